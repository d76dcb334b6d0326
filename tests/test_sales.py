"""Tests for Sale API endpoints."""
from kombu.exceptions import OperationalError


def _sale(client, voucher, lines, **extra):
    payload = {
        "voucherNumber": voucher,
        "products": [
            {"product": product_id, "quantity": quantity, "salePrice": price}
            for product_id, quantity, price in lines
        ],
    }
    payload.update(extra)
    return client.post("/api/sales/", json=payload)


def test_create_sale_success(client, create_product):
    """Test creating a sale computes totals and takes stock."""
    product = create_product(quantity=10, costPrice=35000)

    response = _sale(client, "V-001", [(product["id"], 3, 50000)])

    assert response.status_code == 201
    data = response.json()
    assert data["voucherNumber"] == "V-001"
    assert data["totalAmount"] == 150000
    assert data["profit"] == 45000
    assert len(data["products"]) == 1
    line = data["products"][0]
    assert line["quantity"] == 3
    assert line["salePrice"] == 50000
    assert line["costPrice"] == 35000
    assert line["product"]["id"] == product["id"]

    updated = client.get(f"/api/products/{product['id']}").json()
    assert updated["quantity"] == 7


def test_create_sale_schedules_stock_check(client, create_product, stock_check_task):
    """Test the background stock check is queued with the sold products."""
    first = create_product()
    second = create_product()

    response = _sale(client, "V-002", [(second["id"], 1, 100), (first["id"], 1, 100)])

    assert response.status_code == 201
    stock_check_task.assert_called_once_with(sorted([first["id"], second["id"]]))


def test_create_sale_trims_voucher(client, create_product):
    """Test the voucher number is stored trimmed."""
    product = create_product()

    response = _sale(client, "  V-003  ", [(product["id"], 1, 100)])

    assert response.status_code == 201
    assert response.json()["voucherNumber"] == "V-003"


def test_create_sale_duplicate_voucher(client, create_product, stock_check_task):
    """Test a voucher number can only be used once."""
    product = create_product(quantity=10)
    assert _sale(client, "V-004", [(product["id"], 1, 100)]).status_code == 201

    response = _sale(client, " V-004 ", [(product["id"], 1, 100)])

    assert response.status_code == 400
    assert "already exists" in response.json()["message"]
    assert client.get(f"/api/products/{product['id']}").json()["quantity"] == 9
    assert stock_check_task.call_count == 1


def test_create_sale_voucher_is_case_sensitive(client, create_product):
    """Test vouchers differing only in case are distinct."""
    product = create_product(quantity=10)

    assert _sale(client, "v-005", [(product["id"], 1, 100)]).status_code == 201
    assert _sale(client, "V-005", [(product["id"], 1, 100)]).status_code == 201


def test_create_sale_missing_voucher(client, create_product):
    """Test the voucher number is required."""
    product = create_product()

    response = client.post(
        "/api/sales/",
        json={"products": [{"product": product["id"], "quantity": 1, "salePrice": 100}]}
    )

    assert response.status_code == 400
    assert response.json()["message"].startswith("Missing required fields")


def test_create_sale_blank_voucher(client, create_product):
    """Test a whitespace-only voucher number is rejected."""
    product = create_product()

    response = _sale(client, "   ", [(product["id"], 1, 100)])

    assert response.status_code == 400
    assert response.json()["message"] == "Voucher number cannot be empty"


def test_create_sale_without_products(client):
    """Test at least one line item is required."""
    response = client.post("/api/sales/", json={"voucherNumber": "V-006", "products": []})

    assert response.status_code == 400
    assert response.json()["message"].startswith("Missing required fields")


def test_create_sale_line_missing_price(client, create_product):
    """Test every line needs a product, a quantity and a sale price."""
    product = create_product()

    response = client.post(
        "/api/sales/",
        json={"voucherNumber": "V-007", "products": [{"product": product["id"], "quantity": 1}]}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Each product must have product ID, quantity, and sale price"


def test_create_sale_zero_quantity(client, create_product):
    """Test a line quantity must be positive."""
    product = create_product()

    response = _sale(client, "V-008", [(product["id"], 0, 100)])

    assert response.status_code == 400
    assert response.json()["message"] == "Quantity must be greater than 0"


def test_create_sale_negative_price(client, create_product):
    """Test a line sale price must be positive."""
    product = create_product()

    response = _sale(client, "V-009", [(product["id"], 1, -5)])

    assert response.status_code == 400
    assert response.json()["message"] == "Sale price must be greater than 0"


def test_create_sale_product_not_found(client):
    """Test a sale for an unknown product returns 404."""
    response = _sale(client, "V-010", [(9999, 1, 100)])

    assert response.status_code == 404
    assert response.json()["message"] == "Product with ID 9999 not found"


def test_create_sale_insufficient_stock(client, create_product):
    """Test a sale larger than the stock is rejected with the counts."""
    product = create_product(name="Limited Product", quantity=3)

    response = _sale(client, "V-011", [(product["id"], 5, 100)])

    assert response.status_code == 400
    assert response.json()["message"] == (
        'Insufficient stock for product "Limited Product". Available: 3, Requested: 5'
    )
    assert client.get(f"/api/products/{product['id']}").json()["quantity"] == 3


def test_create_sale_atomic_rejection(client, create_product, stock_check_task):
    """Test one bad line leaves every product on the sale unchanged."""
    products = [create_product(quantity=10) for _ in range(3)]
    short = create_product(quantity=1)

    lines = [(p["id"], 2, 100) for p in products] + [(short["id"], 2, 100)]
    response = _sale(client, "V-012", lines)

    assert response.status_code == 400
    for product in products:
        assert client.get(f"/api/products/{product['id']}").json()["quantity"] == 10
    assert client.get(f"/api/products/{short['id']}").json()["quantity"] == 1
    assert client.get("/api/sales/").status_code == 404
    stock_check_task.assert_not_called()


def test_create_sale_repeated_product_counts_total(client, create_product):
    """Test lines for the same product are checked against stock together."""
    product = create_product(quantity=10)

    response = _sale(client, "V-013", [(product["id"], 6, 100), (product["id"], 6, 100)])

    assert response.status_code == 400
    assert "Available: 10, Requested: 12" in response.json()["message"]
    assert client.get(f"/api/products/{product['id']}").json()["quantity"] == 10


def test_create_sale_with_date(client, create_product):
    """Test an explicit sale date is kept."""
    product = create_product()

    response = _sale(client, "V-014", [(product["id"], 1, 100)], date="2024-03-15T10:30:00")

    assert response.status_code == 201
    assert response.json()["date"].startswith("2024-03-15T10:30:00")


def test_list_sales_empty(client):
    """Test an empty ledger returns 404."""
    response = client.get("/api/sales/")

    assert response.status_code == 404
    assert response.json() == {"message": "No sales found"}


def test_list_sales(client, create_product):
    """Test listing sales expands products."""
    product = create_product()
    _sale(client, "V-015", [(product["id"], 1, 100)])
    _sale(client, "V-016", [(product["id"], 2, 100)])

    response = client.get("/api/sales/")

    assert response.status_code == 200
    data = response.json()
    assert {s["voucherNumber"] for s in data} == {"V-015", "V-016"}
    assert all(s["products"][0]["product"]["name"] == product["name"] for s in data)


def test_get_sale_not_found(client):
    """Test getting a missing sale returns 404."""
    response = client.get("/api/sales/9999")

    assert response.status_code == 404


def test_delete_sale_restores_stock(client, create_product):
    """Test deleting a sale puts the quantities back."""
    product = create_product(quantity=10, costPrice=35000)
    sale = _sale(client, "V-017", [(product["id"], 3, 50000)]).json()
    assert client.get(f"/api/products/{product['id']}").json()["quantity"] == 7

    response = client.delete(f"/api/sales/{sale['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "Sale deleted successfully"}
    assert client.get(f"/api/products/{product['id']}").json()["quantity"] == 10
    assert client.get(f"/api/sales/{sale['id']}").status_code == 404


def test_delete_sale_not_found(client):
    """Test deleting a missing sale returns 404."""
    response = client.delete("/api/sales/9999")

    assert response.status_code == 404
    assert response.json() == {"message": "Sale with ID 9999 not found"}


def test_voucher_reusable_after_delete(client, create_product):
    """Test a deleted sale's voucher number can be used again."""
    product = create_product()
    sale = _sale(client, "V-018", [(product["id"], 1, 100)]).json()
    client.delete(f"/api/sales/{sale['id']}")

    response = _sale(client, "V-018", [(product["id"], 1, 100)])

    assert response.status_code == 201


def test_stock_conservation(client, create_product):
    """Test stock equals initial minus sold plus restored over many operations."""
    product = create_product(quantity=20)
    pid = product["id"]

    a = _sale(client, "C-1", [(pid, 5, 100)]).json()
    b = _sale(client, "C-2", [(pid, 4, 100)]).json()
    _sale(client, "C-3", [(pid, 6, 100)])
    client.delete(f"/api/sales/{a['id']}")
    rejected = _sale(client, "C-4", [(pid, 50, 100)])
    client.delete(f"/api/sales/{b['id']}")
    _sale(client, "C-5", [(pid, 14, 100)])

    assert rejected.status_code == 400
    # 20 - 5 - 4 - 6 + 5 + 4 - 14
    assert client.get(f"/api/products/{pid}").json()["quantity"] == 0
    assert _sale(client, "C-6", [(pid, 1, 100)]).status_code == 400


def test_create_sale_non_finite_price(client, create_product, stock_check_task):
    """Test a sale price that overflows to infinity is rejected before stock moves."""
    product = create_product(quantity=10)

    response = client.post(
        "/api/sales/",
        content='{"voucherNumber": "V-019", '
                f'"products": [{{"product": {product["id"]}, "quantity": 1, "salePrice": 1e309}}]}}',
        headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert "salePrice" in response.json()["message"]
    assert client.get(f"/api/products/{product['id']}").json()["quantity"] == 10
    assert client.get("/api/sales/").status_code == 404
    stock_check_task.assert_not_called()


def test_create_sale_broker_down(client, create_product, stock_check_task):
    """Test a committed sale is still returned when the stock check can't be queued."""
    stock_check_task.side_effect = OperationalError("broker unavailable")
    product = create_product(quantity=10)

    response = _sale(client, "V-020", [(product["id"], 2, 100)])

    assert response.status_code == 201
    stock_check_task.assert_called_once()
    assert client.get(f"/api/sales/{response.json()['id']}").status_code == 200
    assert client.get(f"/api/products/{product['id']}").json()["quantity"] == 8
