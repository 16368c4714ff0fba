from decimal import Decimal
from pathlib import Path

from storefront import crud

from conftest import bearer


async def create_category(client, admin_token, name):
    r = await client.post("/api/categories/create", json={"name": name}, headers=bearer(admin_token))
    assert r.status_code == 201, r.text
    return r.json()["category"]


async def create_product(client, admin_token, files=None, **fields):
    r = await client.post(
        "/api/products/createproduct",
        data=fields,
        files=files,
        headers=bearer(admin_token),
    )
    assert r.status_code == 200, r.text
    return r.json()["product"]


# ---------- categories ----------
async def test_category_crud(client, admin_token):
    cat = await create_category(client, admin_token, "Headphones")
    assert cat["name"] == "Headphones"

    r = await client.post("/api/categories/create", json={"name": "headphones"}, headers=bearer(admin_token))
    assert r.status_code == 400
    r = await client.post("/api/categories/create", json={"name": "   "}, headers=bearer(admin_token))
    assert r.status_code == 400

    r = await client.get("/api/categories")
    assert [c["name"] for c in r.json()["categories"]] == ["Headphones"]

    r = await client.put(f"/api/categories/{cat['id']}", json={"name": "Earbuds"}, headers=bearer(admin_token))
    assert r.status_code == 200
    assert r.json()["category"]["name"] == "Earbuds"

    r = await client.get(f"/api/categories/{cat['id']}")
    assert r.json()["category"]["name"] == "Earbuds"

    r = await client.delete(f"/api/categories/{cat['id']}", headers=bearer(admin_token))
    assert r.status_code == 200
    r = await client.get(f"/api/categories/{cat['id']}")
    assert r.status_code == 404


async def test_category_writes_are_admin_only(client, user_token):
    r = await client.post("/api/categories/create", json={"name": "Nope"}, headers=bearer(user_token))
    assert r.status_code == 403
    r = await client.post("/api/categories/create", json={"name": "Nope"})
    assert r.status_code == 401


async def test_category_with_products_cannot_be_deleted(client, admin_token):
    cat = await create_category(client, admin_token, "Smart Watches")
    product = await create_product(client, admin_token, name="Watch One", price="50", categoryId=cat["id"])

    r = await client.delete(f"/api/categories/{cat['id']}", headers=bearer(admin_token))
    assert r.status_code == 400
    assert r.json()["error"] == "Cannot delete category with existing products"

    r = await client.get(f"/api/categories/products/{cat['id']}")
    body = r.json()
    assert body["category"] == "Smart Watches"
    assert [p["id"] for p in body["products"]] == [product["id"]]


# ---------- products ----------
async def test_create_product_with_images(client, admin_token, settings):
    cat = await create_category(client, admin_token, "Headphones")
    product = await create_product(
        client, admin_token,
        files=[
            ("featuredImage", ("cover.png", b"cover-bytes", "image/png")),
            ("gallery", ("g1.jpg", b"one", "image/jpeg")),
            ("gallery", ("g2.jpg", b"two", "image/jpeg")),
        ],
        name="Studio Pro", price="100", discountedPrice="80", stockCount="10",
        bestseller="true", categoryId=cat["id"], description="Closed back",
    )

    assert product["price"] == 100.0
    assert product["discountedPrice"] == 80.0
    assert product["stockCount"] == 10
    assert product["bestseller"] is True
    assert product["featuredImage"].startswith("/uploads/")
    assert len(product["gallery"]) == 2

    stored = Path(settings.upload_dir) / Path(product["featuredImage"]).name
    assert stored.read_bytes() == b"cover-bytes"


async def test_create_product_validation(client, admin_token):
    r = await client.post("/api/products/createproduct", data={"price": "10"}, headers=bearer(admin_token))
    assert r.status_code == 400
    r = await client.post("/api/products/createproduct", data={"name": "X"}, headers=bearer(admin_token))
    assert r.status_code == 400
    r = await client.post("/api/products/createproduct", data={"name": "X", "price": "abc"}, headers=bearer(admin_token))
    assert r.status_code == 400
    r = await client.post(
        "/api/products/createproduct",
        data={"name": "X", "price": "10", "discountedPrice": "12"},
        headers=bearer(admin_token),
    )
    assert r.status_code == 400
    r = await client.post(
        "/api/products/createproduct",
        data={"name": "X", "price": "10", "categoryId": "missing"},
        headers=bearer(admin_token),
    )
    assert r.status_code == 404
    r = await client.post(
        "/api/products/createproduct",
        data={"name": "X", "price": "10"},
        files={"featuredImage": ("run.exe", b"MZ", "application/octet-stream")},
        headers=bearer(admin_token),
    )
    assert r.status_code == 400


async def test_update_and_delete_product(client, admin_token):
    product = await create_product(client, admin_token, name="Buds", price="40", discountedPrice="30", stockCount="5")

    r = await client.put(f"/api/products/{product['id']}", data={}, headers=bearer(admin_token))
    assert r.status_code == 400
    assert r.json()["error"] == "No data provided to update"

    r = await client.put(
        f"/api/products/{product['id']}",
        data={"name": "Buds 2", "stockCount": "9", "discountedPrice": ""},
        headers=bearer(admin_token),
    )
    assert r.status_code == 200
    updated = r.json()["product"]
    assert updated["name"] == "Buds 2"
    assert updated["stockCount"] == 9
    assert updated["discountedPrice"] is None
    assert updated["price"] == 40.0

    r = await client.put("/api/products/missing", data={"name": "Ghost"}, headers=bearer(admin_token))
    assert r.status_code == 404

    r = await client.delete(f"/api/products/{product['id']}", headers=bearer(admin_token))
    assert r.status_code == 200
    r = await client.get(f"/api/products/{product['id']}")
    assert r.status_code == 404
    r = await client.delete(f"/api/products/{product['id']}", headers=bearer(admin_token))
    assert r.status_code == 404


async def test_search_is_capped_and_needs_auth(client, admin_token, user_token):
    for name in ("Phone Alpha", "Phone Beta", "Phone Gamma", "Speaker"):
        await create_product(client, admin_token, name=name, price="10")

    r = await client.get("/api/products/search", params={"q": "phone"})
    assert r.status_code == 401

    r = await client.get("/api/products/search", params={"q": "phone"}, headers=bearer(user_token))
    assert r.status_code == 200
    names = [p["name"] for p in r.json()["products"]]
    assert len(names) == 2
    assert all("Phone" in n for n in names)

    r = await client.get("/api/products/search", params={"q": " "}, headers=bearer(user_token))
    assert r.status_code == 400


async def test_best_sellers(client, admin_token):
    for i in range(7):
        await create_product(client, admin_token, name=f"Hit {i}", price="10", bestseller="true")
    await create_product(client, admin_token, name="Flop", price="10")

    r = await client.get("/api/products/best")
    top = r.json()["topseller"]
    assert len(top) == 5
    assert all(p["bestseller"] for p in top)


async def test_list_products(client, admin_token):
    await create_product(client, admin_token, name="One", price="1")
    await create_product(client, admin_token, name="Two", price="2")
    r = await client.get("/api/products")
    assert sorted(p["name"] for p in r.json()["products"]) == ["One", "Two"]


async def test_top_selling_ranks_by_units_then_id(client, admin_token, db):
    buyer = await crud.create_user(db, name="B", email="b@example.com", password_hash="x", is_verified=True)
    for pid, price in (("p-a", "10"), ("p-b", "20"), ("p-c", "5"), ("p-gone", "1")):
        await crud.create_product(db, {"id": pid, "name": pid, "price": Decimal(price), "stock_count": 100})

    def line(pid, qty):
        return {"product_id": pid, "quantity": qty, "price": Decimal("1")}

    await crud.insert_order(db, buyer.id, Decimal("1"), [line("p-b", 10), line("p-a", 6)], {})
    await crud.insert_order(db, buyer.id, Decimal("1"), [line("p-a", 4), line("p-c", 5), line("p-gone", 50)], {})
    await db.commit()
    await crud.delete_product(db, "p-gone")

    r = await client.get("/api/products/top-selling", params={"limit": 3}, headers=bearer(admin_token))
    assert r.status_code == 200
    ranked = r.json()["topSelling"]
    assert [p["id"] for p in ranked] == ["p-a", "p-b", "p-c"]
    assert [p["totalSold"] for p in ranked] == [10, 10, 5]
    assert ranked[1]["totalRevenue"] == 200.0


async def test_top_selling_is_admin_only(client, user_token):
    r = await client.get("/api/products/top-selling", headers=bearer(user_token))
    assert r.status_code == 403


async def test_update_cannot_push_discount_above_price(client, admin_token):
    product = await create_product(client, admin_token, name="Cable", price="10", discountedPrice="8")

    r = await client.put(f"/api/products/{product['id']}", data={"discountedPrice": "50"}, headers=bearer(admin_token))
    assert r.status_code == 400
    assert r.json()["error"] == "discountedPrice cannot exceed price"

    # lowering the price under the stored discount is rejected too
    r = await client.put(f"/api/products/{product['id']}", data={"price": "5"}, headers=bearer(admin_token))
    assert r.status_code == 400

    r = await client.put(
        f"/api/products/{product['id']}",
        data={"price": "60", "discountedPrice": "50"},
        headers=bearer(admin_token),
    )
    assert r.status_code == 200
    assert (r.json()["product"]["price"], r.json()["product"]["discountedPrice"]) == (60.0, 50.0)


async def test_rejected_product_requests_leave_no_files(client, admin_token, settings):
    upload_dir = Path(settings.upload_dir)

    def stored():
        return sorted(p.name for p in upload_dir.iterdir()) if upload_dir.exists() else []

    cover = ("featuredImage", ("cover.png", b"cover", "image/png"))

    # service-level rejection after the images were accepted
    r = await client.post(
        "/api/products/createproduct",
        data={"price": "10"},
        files=[cover],
        headers=bearer(admin_token),
    )
    assert r.status_code == 400
    r = await client.post(
        "/api/products/createproduct",
        data={"name": "X", "price": "10", "categoryId": "missing"},
        files=[cover],
        headers=bearer(admin_token),
    )
    assert r.status_code == 404
    r = await client.put("/api/products/missing", data={"name": "Ghost"}, files=[cover], headers=bearer(admin_token))
    assert r.status_code == 404

    # one bad gallery file rejects the whole upload before anything is written
    r = await client.post(
        "/api/products/createproduct",
        data={"name": "X", "price": "10"},
        files=[cover, ("gallery", ("ok.jpg", b"1", "image/jpeg")), ("gallery", ("bad.txt", b"2", "text/plain"))],
        headers=bearer(admin_token),
    )
    assert r.status_code == 400

    assert stored() == []
