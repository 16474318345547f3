from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import optional_text, require_list, require_non_empty
from ..common.web import current_caller, json_body, json_errors, ref_id, request_deadline, staff_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.tute_service
    history = container.history_service

    @app.route("/api/tutes", methods=["POST"], endpoint="tutes_create")
    @staff_required
    @json_errors
    def tutes_create():
        data = json_body()
        caller = current_caller()
        tute = service.create_tute(
            caller,
            title=data.get("title"),
            grade=data.get("grade"),
            month=data.get("month"),
            description=optional_text(data.get("description")),
            file_url=optional_text(data.get("fileUrl")),
            file_name=optional_text(data.get("fileName")),
            deadline=request_deadline(),
        )
        return jsonify(service.present_tutes([tute])[0]), 201

    @app.route("/api/tutes", methods=["GET"], endpoint="tutes_list")
    @staff_required
    @json_errors
    def tutes_list():
        tutes = service.list_tutes(grade=request.args.get("grade") or None, month=request.args.get("month") or None)
        return jsonify(service.present_tutes(tutes))

    @app.route("/api/tutes/sync", methods=["POST"], endpoint="tutes_sync")
    @staff_required
    @json_errors
    def tutes_sync():
        data = json_body()
        class_id = require_non_empty(ref_id(data.get("classId")), "classId")
        student_id = require_non_empty(ref_id(data.get("studentId")), "studentId")
        tute_ids = require_list(data.get("tuteIds"), "tuteIds")

        ack = service.sync_assignments(
            current_caller(),
            class_id=class_id,
            student_id=student_id,
            tute_ids=[ref_id(t) for t in tute_ids],
            reference_date=data.get("date"),
            deadline=request_deadline(),
        )
        return jsonify(ack)

    @app.route("/api/tutes/assign", methods=["POST"], endpoint="tutes_assign")
    @staff_required
    @json_errors
    def tutes_assign():
        data = json_body()
        class_id = require_non_empty(ref_id(data.get("classId")), "classId")
        tute_id = require_non_empty(ref_id(data.get("tuteId")), "tuteId")
        students = data.get("students") or []
        require_list(students, "students")

        ack = service.assign_bulk(
            current_caller(),
            class_id=class_id,
            tute_id=tute_id,
            student_ids=[ref_id(s) for s in students],
            assigned_at=data.get("date"),
            deadline=request_deadline(),
        )
        return jsonify(ack)

    @app.route("/api/tutes/assignments", methods=["GET"], endpoint="tutes_assignments")
    @staff_required
    @json_errors
    def tutes_assignments():
        args = request.args
        data = service.month_overview(
            current_caller(),
            class_id=require_non_empty(args.get("classId"), "classId"),
            month=require_non_empty(args.get("month"), "month"),
        )
        return jsonify(data)

    @app.route("/api/tutes/assignments/<assignment_id>", methods=["PATCH"], endpoint="tutes_assignment_status")
    @staff_required
    @json_errors
    def tutes_assignment_status(assignment_id: str):
        data = json_body()
        assignment = service.set_status(
            current_caller(),
            assignment_id,
            require_non_empty(data.get("status"), "status"),
            deadline=request_deadline(),
        )
        return jsonify(service.present_assignments([assignment])[0])

    @app.route("/api/tutes/history", methods=["GET"], endpoint="tutes_history")
    @staff_required
    @json_errors
    def tutes_history():
        args = request.args
        data = history.tute_history(
            current_caller(),
            class_id=require_non_empty(args.get("classId"), "classId"),
            month=require_non_empty(args.get("month"), "month"),
        )
        return jsonify(data)
