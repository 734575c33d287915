"""
Populate an empty database with the starter catalogue.

    DATABASE_URL=mongodb://localhost:27017 python seed.py
"""
import logging
import sys

import auth
import categories
import database
import products
from schemas import Category, Product

logger = logging.getLogger("seed")

CONTACT_NUMBER = "+919876543210"

CATALOGUE = [
    {
        "name": "Vegetables",
        "description": "Fresh organic vegetables",
        "image": "https://images.unsplash.com/photo-1540420773420-3366772f4999?w=400",
        "sub_categories": [
            {
                "name": "Leafy & Salad",
                "products": [
                    {
                        "name": "Organic Tomatoes",
                        "description": "Fresh, juicy organic tomatoes perfect for salads and cooking",
                        "images": ["https://images.unsplash.com/photo-1592924357228-91b4d4b8f2c0?w=400"],
                        "price": 120, "original_price": 150, "stock": 50, "unit": "kg",
                        "tags": ["organic", "fresh", "vegetables"],
                    },
                ],
            },
        ],
    },
    {
        "name": "Fruits",
        "description": "Fresh seasonal fruits",
        "image": "https://images.unsplash.com/photo-1566385101042-1a0aa0c1268c?w=400",
        "sub_categories": [
            {
                "name": "Seasonal Fruits",
                "products": [
                    {
                        "name": "Fresh Mangoes",
                        "description": "Sweet and juicy Alphonso mangoes",
                        "images": ["https://images.unsplash.com/photo-1566385101042-1a0aa0c1268c?w=400"],
                        "price": 200, "original_price": 250, "stock": 30, "unit": "kg",
                        "tags": ["fruits", "mango", "sweet"],
                    },
                ],
            },
        ],
    },
    {
        "name": "Grains",
        "description": "Organic grains and cereals",
        "image": "https://images.unsplash.com/photo-1586201375761-83865001e31c?w=400",
        "sub_categories": [
            {
                "name": "Rice",
                "products": [
                    {
                        "name": "Basmati Rice",
                        "description": "Premium quality basmati rice",
                        "images": ["https://images.unsplash.com/photo-1586201375761-83865001e31c?w=400"],
                        "price": 180, "original_price": 220, "stock": 100, "unit": "kg",
                        "tags": ["grains", "rice", "basmati"],
                    },
                ],
            },
        ],
    },
    {
        "name": "Spices",
        "description": "Aromatic spices and herbs",
        "image": "https://images.unsplash.com/photo-1596040033229-a9821ebd058d?w=400",
        "sub_categories": [],
    },
]


def seed(db) -> int:
    """Insert the starter catalogue; returns the number of products created."""
    created = 0
    for position, main in enumerate(CATALOGUE, start=1):
        parent = categories.create(db, Category(
            name=main["name"],
            description=main["description"],
            image=main["image"],
            sort_order=position,
        ))
        for sub_position, sub in enumerate(main["sub_categories"], start=1):
            sub_category = categories.create(db, Category(
                name=sub["name"],
                parent_category=parent["id"],
                sort_order=sub_position,
            ))
            for item in sub["products"]:
                products.create(db, Product(
                    sub_category=sub_category["id"],
                    whatsapp_message=f"Hi! I am interested in {item['name']}. Please provide more details.",
                    phone_number=CONTACT_NUMBER,
                    **item,
                ))
                created += 1
    return created


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    db = database.db
    if db is None:
        logger.error("DATABASE_URL is not set")
        return 1
    auth.ensure_indexes(db)
    auth.init_admin(db)
    if db[categories.COLLECTION].count_documents({}) > 0:
        logger.info("Catalogue already present, skipping")
        return 0
    count = seed(db)
    logger.info("Seeded %d categories and %d products", db[categories.COLLECTION].count_documents({}), count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
