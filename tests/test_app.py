"""HTTP tests for the session overview and balance detail routes."""


class TestHealthCheck:
    def test_health(self, client) -> None:
        resp = client.get("/api")

        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"


class TestCalculate:
    def test_settlement_lines(self, client, dinner_snapshot) -> None:
        resp = client.post("/api/calculate", json=dinner_snapshot)

        assert resp.status_code == 200
        assert resp.get_json() == ["Bob owes Alice ₱50.00"]

    def test_nothing_owed(self, client) -> None:
        resp = client.post("/api/calculate", json={"members": [{"id": "a", "name": "Alice"}]})

        assert resp.get_json() == ["No debts found!"]

    def test_currency_from_config(self, make_client, dinner_snapshot) -> None:
        client = make_client(CURRENCY_SYMBOL="$")
        resp = client.post("/api/calculate", json=dinner_snapshot)

        assert resp.get_json() == ["Bob owes Alice $50.00"]


class TestSessionBalances:
    def test_overview(self, client, dinner_snapshot) -> None:
        resp = client.post("/api/balances", json=dinner_snapshot)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["summary"] == {
            "member_count": 3,
            "order_count": 1,
            "total_amount": 100.0,
            "unbalanced_orders": [],
        }
        assert [b["member_id"] for b in body["balances"]] == ["m-alice", "m-bob", "m-carol"]

        alice, bob, carol = body["balances"]
        assert alice["net_balance"] == 50.0
        assert alice["total_owed_to_them"] == 50.0
        assert alice["standing"] == "owed"
        assert bob["transfers"] == [
            {"to_member_id": "m-alice", "to_member_name": "Alice", "amount": 50.0}
        ]
        assert bob["total_owed"] == 50.0
        assert carol["standing"] == "settled"
        assert carol["transfers"] == []

    def test_malformed_json(self, client) -> None:
        resp = client.post("/api/balances", data="not json", content_type="application/json")

        assert resp.status_code == 400
        assert "JSON" in resp.get_json()["error"]

    def test_invalid_snapshot(self, client) -> None:
        resp = client.post("/api/balances", json={"members": []})

        assert resp.status_code == 400
        assert "member" in resp.get_json()["error"]

    def test_unknown_member_reference(self, client, dinner_snapshot) -> None:
        dinner_snapshot["order_payers"].append(
            {"order_id": "o-dinner", "member_id": "m-ghost", "amount_paid": 5}
        )

        resp = client.post("/api/balances", json=dinner_snapshot)

        assert resp.status_code == 422
        assert "m-ghost" in resp.get_json()["error"]

    def test_unknown_order_reference(self, client, dinner_snapshot) -> None:
        dinner_snapshot["order_consumers"].append(
            {"order_id": "o-lunch", "member_id": "m-carol", "split_ratio": 1}
        )

        resp = client.post("/api/balances", json=dinner_snapshot)

        assert resp.status_code == 422
        assert "o-lunch" in resp.get_json()["error"]

    def test_get_not_allowed(self, client) -> None:
        assert client.get("/api/balances").status_code == 405


class TestMemberBalance:
    def test_debtor_detail(self, client, dinner_snapshot) -> None:
        resp = client.post("/api/balances/m-bob", json=dinner_snapshot)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["member_name"] == "Bob"
        assert body["standing"] == "owes"
        assert body["total_owed"] == 50.0
        assert body["transfers"][0]["to_member_name"] == "Alice"

    def test_matches_overview(self, client, dinner_snapshot) -> None:
        overview = client.post("/api/balances", json=dinner_snapshot).get_json()
        detail = client.post("/api/balances/m-alice", json=dinner_snapshot).get_json()

        assert detail == overview["balances"][0]

    def test_integer_member_ids(self, client) -> None:
        snapshot = {
            "members": [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}],
            "orders": [{"id": 10, "total_amount": 90}],
            "order_payers": [{"order_id": 10, "member_id": 2, "amount_paid": 90}],
            "order_consumers": [
                {"order_id": 10, "member_id": 1, "split_ratio": 2},
                {"order_id": 10, "member_id": 2, "split_ratio": 1},
            ],
        }

        resp = client.post("/api/balances/1", json=snapshot)

        assert resp.status_code == 200
        assert resp.get_json()["transfers"] == [
            {"to_member_id": 2, "to_member_name": "Bob", "amount": 60.0}
        ]

    def test_member_not_in_session(self, client, dinner_snapshot) -> None:
        resp = client.post("/api/balances/m-nobody", json=dinner_snapshot)

        assert resp.status_code == 404
        assert "m-nobody" in resp.get_json()["error"]

    def test_ids_equal_as_strings_rejected(self, client) -> None:
        snapshot = {
            "members": [{"id": 1, "name": "IntOne"}, {"id": "1", "name": "StrOne"}],
        }

        resp = client.post("/api/balances/1", json=snapshot)

        assert resp.status_code == 400
        assert "duplicate member id" in resp.get_json()["error"]


class TestUnbalancedOrders:
    def test_overview_lists_partly_assigned_orders(self, client, dinner_snapshot) -> None:
        dinner_snapshot["orders"].append({"id": "o-taxi", "name": "Taxi", "total_amount": 30})
        dinner_snapshot["order_payers"].append(
            {"order_id": "o-taxi", "member_id": "m-carol", "amount_paid": 20}
        )

        resp = client.post("/api/balances", json=dinner_snapshot)

        assert resp.status_code == 200
        assert resp.get_json()["summary"]["unbalanced_orders"] == [
            {
                "order_id": "o-taxi",
                "order_name": "Taxi",
                "total_amount": 30.0,
                "total_paid": 20.0,
                "total_assigned": 0.0,
            }
        ]


class TestOrderAssignment:
    def test_amounts_become_ratios(self, client) -> None:
        body = {
            "total_amount": 100,
            "paid": {"m-alice": 100, "m-bob": 0},
            "split": {"m-alice": 25, "m-bob": 75},
        }

        resp = client.post("/api/orders/o-1/assignment", json=body)

        assert resp.status_code == 200
        assert resp.get_json() == {
            "order_payers": [{"order_id": "o-1", "member_id": "m-alice", "amount_paid": 100.0}],
            "order_consumers": [
                {"order_id": "o-1", "member_id": "m-alice", "split_ratio": 0.25},
                {"order_id": "o-1", "member_id": "m-bob", "split_ratio": 0.75},
            ],
        }

    def test_equal_split_list(self, client) -> None:
        body = {"total_amount": 90, "paid": {"a": 90}, "equal_split": ["a", "b", "c"]}

        resp = client.post("/api/orders/o-1/assignment", json=body)

        consumers = resp.get_json()["order_consumers"]
        assert [c["member_id"] for c in consumers] == ["a", "b", "c"]
        assert all(abs(c["split_ratio"] - 1 / 3) < 1e-9 for c in consumers)

    def test_underpaid_order_rejected(self, client) -> None:
        body = {"total_amount": 100, "paid": {"a": 60}, "split": {"a": 100}}

        resp = client.post("/api/orders/o-1/assignment", json=body)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Total paid (60.00) must equal order total (100.00)"

    def test_nobody_selected(self, client) -> None:
        resp = client.post("/api/orders/o-1/assignment", json={"total_amount": 10, "paid": {"a": 10}})

        assert resp.status_code == 400
        assert "at least one person" in resp.get_json()["error"]

    def test_bad_body(self, client) -> None:
        resp = client.post("/api/orders/o-1/assignment", json={"total_amount": -5})

        assert resp.status_code == 400
        assert "'total_amount'" in resp.get_json()["error"]
