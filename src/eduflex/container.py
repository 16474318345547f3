from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .classes.repository import ClassRepository, EnrollmentRepository
from .classes.service import RosterService
from .common.datetime_utils import now_local
from .database.connection import DBConfig, DatabaseConnection
from .fees.repository import FeeRepository
from .fees.service import FeeService
from .history.service import HistoryService
from .store import RecordStore
from .store.memory_store import InMemoryRecordStore
from .store.mysql_store import MySQLRecordStore
from .tutes.repository import TuteAssignmentRepository, TuteRepository
from .tutes.service import TuteService
from .users.repository import UserRepository
from .users.service import ReferenceResolver


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    store: RecordStore

    users_repo: UserRepository
    classes_repo: ClassRepository
    enrollments_repo: EnrollmentRepository
    attendance_repo: AttendanceRepository
    fees_repo: FeeRepository
    tutes_repo: TuteRepository
    tute_assignments_repo: TuteAssignmentRepository

    roster_service: RosterService
    reference_resolver: ReferenceResolver
    attendance_service: AttendanceService
    fee_service: FeeService
    tute_service: TuteService
    history_service: HistoryService


def build_store(
    *,
    backend: str,
    db_config: Optional[dict] = None,
    clock: Callable[[], datetime] = now_local,
) -> tuple[Optional[DatabaseConnection], RecordStore]:
    if backend == "memory":
        return None, InMemoryRecordStore(clock=clock)
    if backend != "mysql":
        raise ValueError(f"Unknown STORE_BACKEND: {backend!r}")

    db_config = db_config or {}
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)
    return conn, MySQLRecordStore(conn, clock=clock)


def build_container(
    *,
    db_config: Optional[dict] = None,
    backend: str = "mysql",
    store: Optional[RecordStore] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    conn: Optional[DatabaseConnection] = None
    if store is None:
        conn, store = build_store(backend=backend, db_config=db_config, clock=clock)

    users_repo = UserRepository(store)
    classes_repo = ClassRepository(store)
    enrollments_repo = EnrollmentRepository(store)
    attendance_repo = AttendanceRepository(store)
    fees_repo = FeeRepository(store)
    tutes_repo = TuteRepository(store)
    tute_assignments_repo = TuteAssignmentRepository(store)

    roster_service = RosterService(classes_repo, enrollments_repo)
    reference_resolver = ReferenceResolver(users_repo, classes_repo)
    attendance_service = AttendanceService(attendance_repo, roster_service, reference_resolver, clock=clock)
    fee_service = FeeService(fees_repo, roster_service, reference_resolver, clock=clock)
    tute_service = TuteService(tutes_repo, tute_assignments_repo, roster_service, reference_resolver, clock=clock)
    history_service = HistoryService(
        attendance_repo,
        fees_repo,
        tutes_repo,
        tute_assignments_repo,
        roster_service,
        reference_resolver,
    )

    return Container(
        conn=conn,
        store=store,
        users_repo=users_repo,
        classes_repo=classes_repo,
        enrollments_repo=enrollments_repo,
        attendance_repo=attendance_repo,
        fees_repo=fees_repo,
        tutes_repo=tutes_repo,
        tute_assignments_repo=tute_assignments_repo,
        roster_service=roster_service,
        reference_resolver=reference_resolver,
        attendance_service=attendance_service,
        fee_service=fee_service,
        tute_service=tute_service,
        history_service=history_service,
    )
