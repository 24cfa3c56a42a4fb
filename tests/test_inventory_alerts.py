from bizdash.inventory_alerts import load_negative_inventory, session_popup_key


def test_negative_rows_are_named_and_sorted(fake_db):
    rows = load_negative_inventory(fake_db)
    assert [r["id"] for r in rows] == ["oi2", "oi1", "oi3"]
    by_id = {r["id"]: r for r in rows}
    assert by_id["oi1"]["product_name"] == "Double Side Tri Colour 10x12 Cover"
    assert by_id["oi1"]["client_name"] == "Ravi Stores"
    assert by_id["oi2"]["client_name"] == "-"
    assert by_id["oi3"]["product_name"] == "(Unknown product)"
    assert by_id["oi3"]["client_name"] == "(Unknown client)"


def test_load_failure_yields_no_rows(fake_db):
    fake_db.fail_on.add("order_inventory")
    assert load_negative_inventory(fake_db) == []


def test_name_lookup_failure_still_lists_rows(fake_db):
    fake_db.fail_on.add("clients")
    rows = load_negative_inventory(fake_db)
    assert rows[0]["client_name"] == "-"
    assert rows[1]["client_name"] == "(Unknown client)"


def test_popup_key_per_login():
    assert session_popup_key(None) == "negOrderPopupDismissed@anon"
    assert session_popup_key({"loggedIn": False, "username": "kavin"}) == "negOrderPopupDismissed@anon"
    assert session_popup_key({"loggedIn": True}) == "negOrderPopupDismissed@user@0"
    assert (
        session_popup_key({"loggedIn": True, "username": "kavin", "loginAt": 1710000000})
        == "negOrderPopupDismissed@kavin@1710000000"
    )
