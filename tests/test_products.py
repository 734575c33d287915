import pytest
from bson import ObjectId

import categories
import products
from errors import InsufficientStockError, InvalidReferenceError, NotFoundError
from schemas import ProductUpdate


def ids(items):
    return {p["id"] for p in items}


def test_listing_sorted_by_sort_order_then_name(db, shelf, make_product):
    _, sub = shelf
    make_product("Banana", sub["id"])
    make_product("Apple", sub["id"])
    make_product("Carrot", sub["id"], sort_order=-1)

    assert [p["name"] for p in products.list_all(db)] == ["Carrot", "Apple", "Banana"]
    assert [p["name"] for p in products.list_by_sub_category(db, sub["id"])] == ["Carrot", "Apple", "Banana"]


def test_product_sub_category_is_populated(db, shelf, make_product):
    main, sub = shelf
    created = make_product("Cherry Tomatoes", sub["id"])

    assert created["sub_category"] == {
        "id": sub["id"],
        "name": "Tomatoes",
        "parent_category": {"id": main["id"], "name": "Vegetables"},
    }


def test_list_all_hides_inactive_unless_asked(db, shelf, make_product):
    _, sub = shelf
    make_product("Visible", sub["id"])
    make_product("Hidden", sub["id"], is_active=False)

    assert [p["name"] for p in products.list_all(db)] == ["Visible"]
    assert [p["name"] for p in products.list_all(db, active_only=False)] == ["Hidden", "Visible"]


def test_list_by_category_is_union_of_its_sub_categories(db, make_category, make_product):
    fruits = make_category("Fruits")
    mangoes = make_category("Mangoes", parent=fruits["id"])
    apples = make_category("Apples", parent=fruits["id"])
    vegetables = make_category("Vegetables")
    leafy = make_category("Leafy", parent=vegetables["id"])
    make_product("Alphonso", mangoes["id"])
    make_product("Kesar", mangoes["id"])
    make_product("Fuji", apples["id"])
    make_product("Spinach", leafy["id"])

    expected = ids(products.list_by_sub_category(db, mangoes["id"])) | ids(
        products.list_by_sub_category(db, apples["id"]))

    assert ids(products.list_by_category(db, fruits["id"])) == expected
    assert len(expected) == 3


def test_list_by_category_skips_inactive_products(db, make_category, make_product):
    fruits = make_category("Fruits")
    mangoes = make_category("Mangoes", parent=fruits["id"])
    make_product("Alphonso", mangoes["id"])
    make_product("Out of season", mangoes["id"], is_active=False)

    assert [p["name"] for p in products.list_by_category(db, fruits["id"])] == ["Alphonso"]
    assert [p["name"] for p in products.list_by_category(db, fruits["id"], active_only=False)] == [
        "Alphonso", "Out of season",
    ]


def test_list_by_category_follows_legacy_string_parents(db, make_category, make_product):
    fruits = make_category("Fruits")
    mangoes = make_category("Mangoes", parent=fruits["id"])
    make_product("Alphonso", mangoes["id"])
    db[categories.COLLECTION].update_one({"_id": ObjectId(mangoes["id"])}, {"$set": {"parent_category": fruits["id"]}})

    assert [p["name"] for p in products.list_by_category(db, fruits["id"])] == ["Alphonso"]


def test_category_without_sub_categories_lists_nothing(db, make_category):
    spices = make_category("Spices")
    # A product wrongly filed directly under the main category is not a fallback match.
    db[products.COLLECTION].insert_one({
        "name": "Turmeric", "price": 50, "stock": 5, "is_active": True, "sort_order": 0,
        "sub_category": ObjectId(spices["id"]), "tags": [],
    })

    assert products.list_by_category(db, spices["id"]) == []
    assert products.list_by_category(db, "not-a-valid-id") == []


def test_search_is_case_insensitive_over_name_description_and_tags(db, shelf, make_product):
    _, sub = shelf
    make_product("Organic Tomatoes", sub["id"])
    make_product("Red Gold", sub["id"], tags=["Tomato", "heirloom"])
    make_product("Passata", sub["id"], description="Sieved TOMATO puree")
    make_product("Old Tomato Stock", sub["id"], is_active=False)
    make_product("Cucumber", sub["id"], tags=["salad"])

    found = [p["name"] for p in products.search(db, "tomato")]

    assert found == ["Organic Tomatoes", "Passata", "Red Gold"]


def test_search_treats_query_as_plain_text(db, shelf, make_product):
    _, sub = shelf
    make_product("Chilli (dried)", sub["id"])
    make_product("Chilli powder", sub["id"])

    assert [p["name"] for p in products.search(db, "(dried)")] == ["Chilli (dried)"]


def test_get_by_id_not_found(db):
    with pytest.raises(NotFoundError):
        products.get_by_id(db, str(ObjectId()))
    with pytest.raises(NotFoundError):
        products.get_by_id(db, "garbage")


def test_products_must_belong_to_a_sub_category(shelf, make_product):
    main, _ = shelf

    with pytest.raises(InvalidReferenceError):
        make_product("Misfiled", main["id"])
    with pytest.raises(InvalidReferenceError):
        make_product("Dangling", str(ObjectId()))


def test_update_product_moves_it_between_sub_categories(db, make_category, make_product):
    fruits = make_category("Fruits")
    mangoes = make_category("Mangoes", parent=fruits["id"])
    apples = make_category("Apples", parent=fruits["id"])
    product = make_product("Fuji", mangoes["id"])

    updated = products.update(db, product["id"], ProductUpdate(sub_category={"id": apples["id"]}, price=80))

    assert updated["sub_category"]["id"] == apples["id"]
    assert updated["price"] == 80
    assert products.list_by_sub_category(db, mangoes["id"]) == []


def test_delete_product(db, shelf, make_product):
    _, sub = shelf
    product = make_product("Okra", sub["id"])

    products.delete(db, product["id"])

    with pytest.raises(NotFoundError):
        products.delete(db, product["id"])


def test_update_stock_decrements(db, shelf, make_product):
    _, sub = shelf
    product = make_product("Onions", sub["id"], stock=10)

    assert products.update_stock(db, product["id"], 4)["stock"] == 6
    assert products.update_stock(db, product["id"], 6)["stock"] == 0


def test_update_stock_refuses_to_go_negative(db, shelf, make_product):
    _, sub = shelf
    product = make_product("Onions", sub["id"], stock=3)

    with pytest.raises(InsufficientStockError) as exc:
        products.update_stock(db, product["id"], 4)

    assert exc.value.product_name == "Onions"
    assert products.get_by_id(db, product["id"])["stock"] == 3


def test_stock_never_observed_below_zero(db, shelf, make_product):
    _, sub = shelf
    product = make_product("Garlic", sub["id"], stock=7)

    for quantity in [3, 5, 2, 4, 1, 1]:
        try:
            products.update_stock(db, product["id"], quantity)
        except InsufficientStockError:
            pass
        assert products.get_by_id(db, product["id"])["stock"] >= 0

    assert products.get_by_id(db, product["id"])["stock"] == 0


def test_update_stock_missing_product(db):
    with pytest.raises(NotFoundError):
        products.update_stock(db, str(ObjectId()), 1)
