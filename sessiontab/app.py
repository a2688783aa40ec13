# sessiontab/app.py
from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from sessiontab.config import Config
from sessiontab.errors import AssignmentError, MemberNotFoundError, PayloadError, SnapshotIntegrityError
from sessiontab.payload import dump_balance, dump_summary, load_assignment, load_snapshot
from sessiontab.settlement import (
    assign_order,
    calculate_balances,
    describe_transfers,
    equal_split,
    summarize_session,
)


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    app.json.ensure_ascii = False  # keep the currency symbol readable

    # Allows the mobile / web frontend to call the API
    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    register_error_handlers(app)
    register_routes(app)
    return app


def register_error_handlers(app):
    @app.errorhandler(PayloadError)
    def bad_payload(e):
        app.logger.warning("Rejected snapshot: %s", e)
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(SnapshotIntegrityError)
    def broken_snapshot(e):
        # Upstream data is inconsistent, the caller has to look into it
        app.logger.warning("Snapshot failed integrity check: %s", e)
        return jsonify({"error": str(e)}), 422

    @app.errorhandler(AssignmentError)
    def bad_assignment(e):
        app.logger.warning("Rejected split assignment: %s", e)
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(MemberNotFoundError)
    def unknown_member(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(Exception)
    def unexpected(e):
        # Let Flask render its own 404/405 etc.
        if isinstance(e, HTTPException):
            return e
        app.logger.exception("Unexpected error while computing balances")
        return jsonify({"error": str(e)}), 500


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        raise PayloadError("Request body must be JSON")
    return data


def _snapshot_from_request():
    return load_snapshot(_json_body())


def _balances(snapshot):
    return calculate_balances(snapshot.members, snapshot.orders, snapshot.payers, snapshot.consumers)


def register_routes(app):
    # --- 1. HEALTH CHECK ROUTE ---
    @app.route('/api', methods=['GET'])
    def health_check():
        return jsonify({"status": "healthy", "message": "Backend is running!"})

    # --- 2. SETTLEMENT LINES ---
    @app.route('/api/calculate', methods=['POST'])
    def calculate():
        snapshot = _snapshot_from_request()
        results = describe_transfers(_balances(snapshot), app.config["CURRENCY_SYMBOL"])
        return jsonify(results)

    # --- 3. SESSION OVERVIEW: every member's balance ---
    @app.route('/api/balances', methods=['POST'])
    def session_balances():
        snapshot = _snapshot_from_request()
        balances = _balances(snapshot)
        app.logger.info(
            "Computed balances for %d members, %d orders",
            len(snapshot.members),
            len(snapshot.orders),
        )
        return jsonify({
            "summary": dump_summary(summarize_session(
                snapshot.members, snapshot.orders, snapshot.payers, snapshot.consumers
            )),
            "balances": [dump_balance(b) for b in balances],
        })

    # --- 4. BALANCE DETAIL: one member ---
    @app.route('/api/balances/<member_id>', methods=['POST'])
    def member_balance(member_id):
        snapshot = _snapshot_from_request()
        for balance in _balances(snapshot):
            # Path segments are strings; load_snapshot keeps str(id) unique
            if str(balance.member_id) == member_id:
                return jsonify(dump_balance(balance))
        raise MemberNotFoundError(member_id)

    # --- 5. SPLIT ASSIGNMENT: records to store for one order ---
    @app.route('/api/orders/<order_id>/assignment', methods=['POST'])
    def order_assignment(order_id):
        body = load_assignment(_json_body())
        split = body.split or equal_split(body.total_amount, body.equal_split)
        payers, consumers = assign_order(order_id, body.total_amount, body.paid, split)
        return jsonify({
            "order_payers": [
                {"order_id": p.order_id, "member_id": p.member_id, "amount_paid": p.amount_paid}
                for p in payers
            ],
            "order_consumers": [
                {"order_id": c.order_id, "member_id": c.member_id, "split_ratio": c.split_ratio}
                for c in consumers
            ],
        })
