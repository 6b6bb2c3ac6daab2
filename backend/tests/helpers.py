from decimal import Decimal
import schema

def make_category(db, name="Burgers"):
    category = schema.Category(name=name, product_count=0, stock_total=0)
    db.add(category)
    db.commit()
    return category

def make_product(db, name="Classic Burger", price="100.00", stock=10, available=True,
                 discount=None, discount_type=None, category_id=None):
    product = schema.Product(
        name=name,
        price=Decimal(price),
        stock=stock,
        available=available,
        discount=Decimal(discount) if discount is not None else None,
        discount_type=discount_type,
        category_id=category_id,
    )
    db.add(product)
    db.commit()
    return product

def stock_of(db, product_id):
    db.expire_all()
    return db.get(schema.Product, product_id).stock

def user_headers(user_id=1):
    return {"X-User-ID": str(user_id)}

def add_to_cart(client, product_id, quantity=1, user_id=1):
    return client.post(
        "/api/cart/items",
        json={"productId": product_id, "quantity": quantity},
        headers=user_headers(user_id),
    )

def update_cart(client, product_id, quantity, user_id=1):
    return client.put(
        "/api/cart/items",
        json={"productId": product_id, "quantity": quantity},
        headers=user_headers(user_id),
    )

def get_cart(client, user_id=1):
    return client.get("/api/cart", headers=user_headers(user_id))

def place_order(client, items, user_id=1, **extra):
    body = {
        "usuarioId": user_id,
        "items": [{"produtoId": pid, "quantidade": qty} for pid, qty in items],
    }
    body.update(extra)
    return client.post("/api/orders", json=body)

def set_status(client, order_id, status, actor_id=99, note=None):
    body = {"status": status, "criadoPor": actor_id}
    if note is not None:
        body["observacao"] = note
    return client.put(f"/api/orders/{order_id}/status", json=body)
