from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import as_bool, optional_amount, optional_text, require_non_empty
from ..common.web import current_caller, json_body, json_errors, ref_id, request_deadline, staff_required
from ..container import Container
from ..core.exceptions import ValidationError
from .model import FeeEntry


def parse_entry(raw) -> FeeEntry:
    if not isinstance(raw, dict):
        raise ValidationError("Each students item must be an object")
    return FeeEntry(
        student_id=require_non_empty(ref_id(raw.get("student")), "student"),
        is_paid=as_bool(raw.get("isPaid"), default=False),
        amount=optional_amount(raw.get("amount")),
        notes=optional_text(raw.get("notes")),
    )


def register(app: Flask, container: Container) -> None:
    service = container.fee_service
    history = container.history_service

    @app.route("/api/fees/bulk", methods=["POST"], endpoint="fees_bulk")
    @staff_required
    @json_errors
    def fees_bulk():
        data = json_body()
        class_id = ref_id(data.get("class"))
        payment_date = data.get("paymentDate")
        students = data.get("students")
        if not class_id or not payment_date or not isinstance(students, list):
            raise ValidationError("Please provide class, paymentDate, and students array")

        result = service.mark_bulk(
            current_caller(),
            class_id=class_id,
            payment_date=payment_date,
            entries=[parse_entry(s) for s in students],
            default_amount=optional_amount(data.get("amount")),
            deadline=request_deadline(),
        )
        return jsonify(service.present(result.records))

    @app.route("/api/fees", methods=["POST"], endpoint="fees_create")
    @staff_required
    @json_errors
    def fees_create():
        data = json_body()
        record = service.record_fee(
            current_caller(),
            class_id=ref_id(data.get("class")),
            student_id=ref_id(data.get("student")),
            amount=optional_amount(data.get("amount")),
            payment_date=data.get("paymentDate"),
            due_date=data.get("dueDate"),
            status=data.get("status"),
            notes=optional_text(data.get("notes")),
            deadline=request_deadline(),
        )
        return jsonify(service.present([record])[0]), 201

    @app.route("/api/fees", methods=["GET"], endpoint="fees_list")
    @staff_required
    @json_errors
    def fees_list():
        args = request.args
        records = service.list_records(
            current_caller(),
            class_id=args.get("class") or None,
            start=args.get("startDate"),
            end=args.get("endDate"),
            payment_date=args.get("paymentDate"),
            student_id=args.get("student") or None,
            status=args.get("status") or None,
        )
        return jsonify(service.present(records))

    @app.route("/api/fees/<fee_id>", methods=["DELETE"], endpoint="fees_delete")
    @staff_required
    @json_errors
    def fees_delete(fee_id: str):
        service.delete(current_caller(), fee_id, deadline=request_deadline())
        return jsonify({"message": "Fee record deleted successfully"})

    @app.route("/api/fees/history", methods=["GET"], endpoint="fees_history")
    @staff_required
    @json_errors
    def fees_history():
        args = request.args
        data = history.fee_history(
            current_caller(),
            class_id=require_non_empty(args.get("class"), "class"),
            month=require_non_empty(args.get("month"), "month"),
        )
        return jsonify(data)
