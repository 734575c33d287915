import logging
import os
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, EmailStr

import auth
import categories
import config
import database
import orders
import products
import uploads
from errors import StoreError
from schemas import Category as CategorySchema, CategoryUpdate
from schemas import Order as OrderSchema, OrderUpdate, ShippingAddress
from schemas import Product as ProductSchema, ProductUpdate

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


class CategoryRef(BaseModel):
    id: str
    name: str


class CategoryOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    parent_category: Optional[CategoryRef] = None
    is_active: bool = True
    sort_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubCategoryRef(BaseModel):
    id: str
    name: str
    parent_category: Optional[CategoryRef] = None


class ProductOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    images: List[str] = []
    price: float
    original_price: Optional[float] = None
    sub_category: Optional[SubCategoryRef] = None
    is_active: bool = True
    stock: int = 0
    unit: Optional[str] = None
    sort_order: int = 0
    whatsapp_message: Optional[str] = None
    phone_number: Optional[str] = None
    tags: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductRef(BaseModel):
    id: str
    name: str
    price: float
    images: List[str] = []


class UserRef(BaseModel):
    id: str
    name: Optional[str] = None
    email: str


class OrderItemOut(BaseModel):
    product: Optional[ProductRef] = None
    quantity: int
    price: float


class OrderOut(BaseModel):
    id: str
    user: Optional[UserRef] = None
    items: List[OrderItemOut]
    total_amount: float
    computed_total: Optional[float] = None
    status: str
    shipping_address: ShippingAddress
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderStatsOut(BaseModel):
    total_orders: int
    total_revenue: float
    orders_by_status: Dict[str, int]


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class RegisterIn(BaseModel):
    name: str
    email: EmailStr
    password: str


class Base64ImageIn(BaseModel):
    image: str
    filename: str


app = FastAPI(title="AgroMonk API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount(uploads.URL_PREFIX, StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def get_db():
    if database.db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return database.db


@app.on_event("startup")
def prepare_storage():
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    if database.db is not None:
        auth.ensure_indexes(database.db)


def owner_scope(user: dict) -> Optional[str]:
    return None if user["role"] == "admin" else user["sub"]


@app.get("/")
def root():
    return {"name": "AgroMonk API", "status": "ok"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": config.DATABASE_NAME,
        "collections": []
    }
    try:
        if database.db is not None:
            response["collections"] = database.db.list_collection_names()
            response["database"] = "✅ Connected"
    except Exception as e:
        response["database"] = f"⚠️ {str(e)[:80]}"
    return response


# -------------
# Auth Endpoints
# -------------
@app.post("/api/auth/login")
def login(payload: LoginIn, db=Depends(get_db)):
    return auth.login(db, payload.email, payload.password)


@app.post("/api/auth/register")
def register(payload: RegisterIn, db=Depends(get_db)):
    return auth.register(db, payload.name, payload.email, payload.password)


@app.get("/api/auth/init-admin")
def init_admin(db=Depends(get_db)):
    admin = auth.init_admin(db)
    return {"message": f"Admin account ready: {admin['email']}"}


# -------------------
# Categories Endpoints
# -------------------
@app.get("/api/categories", response_model=List[CategoryOut])
def list_categories(db=Depends(get_db)):
    return categories.list_top_level(db, active_only=True)


@app.get("/api/categories/admin", response_model=List[CategoryOut])
def list_categories_admin(db=Depends(get_db), _=Depends(auth.require_admin)):
    return categories.list_all(db)


@app.get("/api/categories/subcategories/{parent_id}/admin", response_model=List[CategoryOut])
def list_sub_categories_admin(parent_id: str, db=Depends(get_db), _=Depends(auth.require_admin)):
    return categories.list_sub_categories(db, parent_id, active_only=False)


@app.get("/api/categories/subcategories/{parent_id}", response_model=List[CategoryOut])
def list_sub_categories(parent_id: str, db=Depends(get_db)):
    return categories.list_sub_categories(db, parent_id, active_only=True)


@app.get("/api/categories/{category_id}", response_model=CategoryOut)
def get_category(category_id: str, db=Depends(get_db)):
    return categories.get_by_id(db, category_id)


@app.post("/api/categories", response_model=CategoryOut)
def create_category(payload: CategorySchema, db=Depends(get_db), _=Depends(auth.require_admin)):
    return categories.create(db, payload)


@app.patch("/api/categories/{category_id}", response_model=CategoryOut)
def update_category(category_id: str, payload: CategoryUpdate, db=Depends(get_db), _=Depends(auth.require_admin)):
    return categories.update(db, category_id, payload)


@app.delete("/api/categories/{category_id}")
def delete_category(category_id: str, db=Depends(get_db), _=Depends(auth.require_admin)):
    categories.delete(db, category_id)
    return {"deleted": True}


# -----------------
# Products Endpoints
# -----------------
@app.get("/api/products", response_model=List[ProductOut])
def list_products(
    category: Optional[str] = None,
    sub_category: Optional[str] = Query(default=None, alias="subCategory"),
    search: Optional[str] = Query(default=None, description="Search query"),
    db=Depends(get_db),
):
    if category:
        return products.list_by_category(db, category)
    if sub_category:
        return products.list_by_sub_category(db, sub_category)
    if search:
        return products.search(db, search)
    return products.list_all(db, active_only=True)


@app.get("/api/products/admin", response_model=List[ProductOut])
def list_products_admin(db=Depends(get_db), _=Depends(auth.require_admin)):
    return products.list_all(db, active_only=False)


@app.get("/api/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db=Depends(get_db)):
    return products.get_by_id(db, product_id)


@app.post("/api/products", response_model=ProductOut)
def create_product(payload: ProductSchema, db=Depends(get_db), _=Depends(auth.require_admin)):
    return products.create(db, payload)


@app.patch("/api/products/{product_id}", response_model=ProductOut)
def update_product(product_id: str, payload: ProductUpdate, db=Depends(get_db), _=Depends(auth.require_admin)):
    return products.update(db, product_id, payload)


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, db=Depends(get_db), _=Depends(auth.require_admin)):
    products.delete(db, product_id)
    return {"deleted": True}


# ---------------
# Orders Endpoints
# ---------------
@app.post("/api/orders", response_model=OrderOut)
def create_order(payload: OrderSchema, db=Depends(get_db), user: dict = Depends(auth.get_current_user)):
    return orders.create(db, payload, user["sub"])


@app.get("/api/orders", response_model=List[OrderOut])
def list_orders(db=Depends(get_db), user: dict = Depends(auth.get_current_user)):
    return orders.find_all(db, owner_scope(user))


@app.get("/api/orders/stats", response_model=OrderStatsOut)
def order_stats(db=Depends(get_db), _=Depends(auth.require_admin)):
    return orders.stats(db)


@app.get("/api/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: str, db=Depends(get_db), user: dict = Depends(auth.get_current_user)):
    return orders.get(db, order_id, owner_scope(user))


@app.patch("/api/orders/{order_id}", response_model=OrderOut)
def update_order(order_id: str, payload: OrderUpdate, db=Depends(get_db), user: dict = Depends(auth.get_current_user)):
    return orders.update(db, order_id, payload, owner_scope(user))


@app.delete("/api/orders/{order_id}")
def delete_order(order_id: str, db=Depends(get_db), user: dict = Depends(auth.get_current_user)):
    orders.delete(db, order_id, owner_scope(user))
    return {"deleted": True}


# ---------------
# Upload Endpoints
# ---------------
@app.post("/api/upload/image")
async def upload_image(image: UploadFile = File(...)):
    if not image.content_type or not image.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")
    content = await image.read()
    url = await uploads.save_image(content, image.filename, config.UPLOAD_DIR)
    return {"url": url}


@app.post("/api/upload/base64")
async def upload_base64(payload: Base64ImageIn):
    url = await uploads.save_base64_image(payload.image, payload.filename, config.UPLOAD_DIR)
    return {"url": url}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
