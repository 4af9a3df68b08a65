import json

from app.schemas.entity import EntityType


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_create_update_delete_customer(client):
    print("Testing customer CRUD over HTTP...")
    response = client.post("/entities/customers", json={"name": "Acme", "status": "active"})
    assert response.status_code == 201
    customer = response.json()
    assert customer["id"]
    assert customer["createdAt"] == customer["updatedAt"]

    response = client.patch(f"/entities/customers/{customer['id']}", json={"name": "Acme Corp"})
    assert response.status_code == 200
    assert response.json()["name"] == "Acme Corp"
    assert response.json()["createdAt"] == customer["createdAt"]

    response = client.get(f"/entities/customers/{customer['id']}")
    assert response.json()["name"] == "Acme Corp"

    response = client.delete(f"/entities/customers/{customer['id']}")
    assert response.json() == {"status": "success"}
    assert client.get(f"/entities/customers/{customer['id']}").status_code == 404
    print("PASSED: customer CRUD")


def test_update_unknown_entity_is_404(client):
    response = client.patch("/entities/customers/missing", json={"name": "x"})
    assert response.status_code == 404


def test_delete_unknown_entity_still_succeeds(client):
    response = client.delete("/entities/customers/missing")
    assert response.status_code == 200
    assert response.json() == {"status": "success"}


def test_unknown_entity_type_is_rejected(client):
    assert client.get("/entities/widgets").status_code == 422
    assert client.post("/entities/widgets", json={"name": "x"}).status_code == 422


def test_search_and_filter(client, repo):
    repo.add(EntityType.PRODUCTS, {"id": "p1", "name": "Gel", "category": "x", "status": "active"})
    repo.add(EntityType.PRODUCTS, {"id": "p2", "name": "Cream x", "category": "y", "status": "active"})
    repo.add(EntityType.PRODUCTS, {"id": "p3", "name": "Soap", "category": "y", "status": "inactive"})

    response = client.get("/entities/products", params={"q": "x", "fields": ["name", "category"]})
    assert [p["id"] for p in response.json()["items"]] == ["p1", "p2"]

    response = client.post("/entities/products/filter", json={"category": "y", "status": "active"})
    assert response.json()["total"] == 1
    assert response.json()["items"][0]["id"] == "p2"

    response = client.get("/entities/products")
    assert response.json()["total"] == 3


def test_search_without_fields_is_rejected(client):
    response = client.get("/entities/products", params={"q": "x"})
    assert response.status_code == 400


def test_next_number(client, repo):
    repo.add(EntityType.INVOICES, {"invoiceNumber": "INV-0007"})
    response = client.get("/entities/invoices/-/next-number")
    assert response.json()["number"] == "INV-0008"

    response = client.get("/entities/invoices/-/next-number", params={"prefix": "SI-"})
    assert response.json()["number"] == "SI-0008"


def test_status_and_load_all(client, storage):
    storage.set("suppliers", "oops")
    storage.set("employees", json.dumps([{"id": "e1", "name": "Sara"}]))

    response = client.post("/entities/load-all")
    body = response.json()
    assert body["status"] == "partial"
    assert "suppliers" in body["errors"]

    status = client.get("/entities/suppliers/-/status").json()
    assert status["loading"] is False
    assert status["error"]
    assert client.get("/entities/employees/-/status").json()["count"] == 1


def test_flush_and_reset(client, repo, storage):
    client.post("/entities/materials", json={"name": "Glycerin"})
    assert client.post("/entities/flush").json()["status"] == "success"

    assert client.post("/entities/reset").json() == {"status": "success"}
    assert repo.all(EntityType.MATERIALS) == ()
    assert json.loads(storage.get("materials"))[0]["name"] == "Glycerin"


def test_convert_quotation(client, repo):
    quotation = repo.add(EntityType.QUOTATIONS, {
        "quotationNumber": "QUO-0001",
        "customerId": "c1",
        "customerName": "Acme",
        "items": [{"productId": "p1", "quantity": 3}],
        "subtotal": 300,
        "tax": 45,
        "total": 345,
    })
    repo.add(EntityType.INVOICES, {"invoiceNumber": "INV-0004"})

    response = client.post(f"/quotations/{quotation['id']}/convert")
    assert response.status_code == 201
    invoice = response.json()
    assert invoice["invoiceNumber"] == "INV-0005"
    assert invoice["quotationId"] == quotation["id"]
    assert invoice["type"] == "sales"
    assert invoice["total"] == 345
    assert invoice["items"] == [{"productId": "p1", "quantity": 3}]


def test_convert_missing_quotation(client, repo):
    response = client.post("/quotations/nope/convert")
    assert response.status_code == 404
    assert "nope" in repo.error(EntityType.QUOTATIONS)
    assert repo.all(EntityType.INVOICES) == ()


def test_available_lists(client, repo):
    repo.add(EntityType.MATERIALS, {"id": "m1", "status": "active", "currentStock": 5})
    repo.add(EntityType.MATERIALS, {"id": "m2", "status": "active", "currentStock": 0})
    repo.add(EntityType.MATERIALS, {"id": "m3", "status": "inactive", "currentStock": 9})
    repo.add(EntityType.PRODUCTS, {"id": "p1", "status": "active"})
    repo.add(EntityType.CUSTOMERS, {"id": "c1", "status": "active"})
    repo.add(EntityType.CUSTOMERS, {"id": "c2", "status": "blocked"})

    assert [m["id"] for m in client.get("/available/materials").json()] == ["m1"]
    assert client.get("/available/products").json() == []
    assert [c["id"] for c in client.get("/available/customers").json()] == ["c1"]


def test_ids_named_like_sub_resources_are_reachable(client, repo):
    repo.add(EntityType.CUSTOMERS, {"id": "status", "name": "Status Trading"})
    repo.add(EntityType.CUSTOMERS, {"id": "next-number", "name": "Next Number Ltd"})

    assert client.get("/entities/customers/status").json()["name"] == "Status Trading"
    assert client.get("/entities/customers/next-number").json()["name"] == "Next Number Ltd"

    response = client.patch("/entities/customers/status", json={"city": "Riyadh"})
    assert response.json()["city"] == "Riyadh"
    assert client.get("/entities/customers/-/status").json()["count"] == 2
