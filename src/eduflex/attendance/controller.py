from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import as_bool, optional_text, require_non_empty
from ..common.web import current_caller, json_body, json_errors, ref_id, request_deadline, staff_required
from ..container import Container
from ..core.exceptions import ValidationError
from .model import AttendanceEntry


def parse_entry(raw) -> AttendanceEntry:
    if not isinstance(raw, dict):
        raise ValidationError("Each students item must be an object")
    return AttendanceEntry(
        student_id=require_non_empty(ref_id(raw.get("student")), "student"),
        is_present=as_bool(raw.get("isPresent"), default=True),
        notes=optional_text(raw.get("notes")),
    )


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service
    history = container.history_service

    @app.route("/api/attendance/bulk", methods=["POST"], endpoint="attendance_bulk")
    @staff_required
    @json_errors
    def attendance_bulk():
        data = json_body()
        class_id = ref_id(data.get("class"))
        session_date = data.get("sessionDate")
        students = data.get("students")
        if not class_id or not session_date or not isinstance(students, list):
            raise ValidationError("Please provide class, sessionDate, and students array")

        entries = [parse_entry(s) for s in students]
        result = service.mark_bulk(
            current_caller(),
            class_id=class_id,
            session_date=session_date,
            entries=entries,
            deadline=request_deadline(),
        )
        return jsonify(service.present(result.records)), 201

    @app.route("/api/attendance", methods=["POST"], endpoint="attendance_mark")
    @staff_required
    @json_errors
    def attendance_mark():
        data = json_body()
        class_id = ref_id(data.get("class"))
        student_id = ref_id(data.get("student"))
        session_date = data.get("sessionDate")
        if not class_id or not student_id or not session_date:
            raise ValidationError("Please provide student, class, and sessionDate")

        record = service.mark_one(
            current_caller(),
            class_id=class_id,
            session_date=session_date,
            entry=parse_entry(data),
            deadline=request_deadline(),
        )
        return jsonify(service.present([record])[0]), 201

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_list")
    @staff_required
    @json_errors
    def attendance_list():
        args = request.args
        records = service.list_records(
            current_caller(),
            class_id=args.get("class") or None,
            start=args.get("startDate"),
            end=args.get("endDate"),
            session_date=args.get("sessionDate"),
            student_id=args.get("student") or None,
        )
        return jsonify(service.present(records))

    @app.route("/api/attendance/<attendance_id>", methods=["DELETE"], endpoint="attendance_delete")
    @staff_required
    @json_errors
    def attendance_delete(attendance_id: str):
        service.delete(current_caller(), attendance_id, deadline=request_deadline())
        return jsonify({"message": "Attendance record deleted successfully"})

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @staff_required
    @json_errors
    def attendance_history():
        args = request.args
        data = history.attendance_history(
            current_caller(),
            class_id=require_non_empty(args.get("class"), "class"),
            month=args.get("month"),
            start=args.get("startDate"),
            end=args.get("endDate"),
        )
        return jsonify(data)

    @app.route("/api/attendance/history.csv", methods=["GET"], endpoint="attendance_history_csv")
    @staff_required
    @json_errors
    def attendance_history_csv():
        args = request.args
        class_id = require_non_empty(args.get("class"), "class")
        window = {"month": args.get("month"), "start": args.get("startDate"), "end": args.get("endDate")}

        text = history.attendance_csv(current_caller(), class_id=class_id, **window)
        filename = history.csv_filename(class_id, **window)
        return app.response_class(
            text.encode("utf-8-sig"),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
