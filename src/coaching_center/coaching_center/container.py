from __future__ import annotations

from dataclasses import dataclass

from .analytics.service import ScoringAnalyticsService
from .attendance.factory import AttendancePolicyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceLedgerService
from .attendance.stats_service import AttendanceStatsService
from .core.constants import LOW_ATTENDANCE_THRESHOLD
from .database.connection import DBConfig, DatabaseConnection
from .directory.mysql_directory_repository import MySQLTenantDirectory
from .marks.mysql_marks_repository import MySQLTestMarkRepository, MySQLTestRepository
from .marks.service import MarksService
from .reports.service import ReportService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    directory: MySQLTenantDirectory
    attendance_repo: MySQLAttendanceRepository
    tests_repo: MySQLTestRepository
    marks_repo: MySQLTestMarkRepository

    attendance_service: AttendanceLedgerService
    attendance_stats_service: AttendanceStatsService
    marks_service: MarksService
    analytics_service: ScoringAnalyticsService
    report_service: ReportService


def build_container(
    *,
    db_config: dict,
    percentage_policy: str = "exclude_holidays",
    low_attendance_threshold: float = LOW_ATTENDANCE_THRESHOLD,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    directory = MySQLTenantDirectory(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    tests_repo = MySQLTestRepository(conn)
    marks_repo = MySQLTestMarkRepository(conn)

    attendance_service = AttendanceLedgerService(attendance_repo, directory)
    attendance_stats_service = AttendanceStatsService(
        attendance_repo,
        directory,
        policy=AttendancePolicyFactory().for_name(percentage_policy),
        low_attendance_threshold=low_attendance_threshold,
    )
    marks_service = MarksService(tests_repo, marks_repo, directory)
    analytics_service = ScoringAnalyticsService(tests_repo, marks_repo, directory)
    report_service = ReportService(attendance_stats_service, analytics_service, tests_repo, marks_repo, directory)

    return Container(
        conn=conn,
        directory=directory,
        attendance_repo=attendance_repo,
        tests_repo=tests_repo,
        marks_repo=marks_repo,
        attendance_service=attendance_service,
        attendance_stats_service=attendance_stats_service,
        marks_service=marks_service,
        analytics_service=analytics_service,
        report_service=report_service,
    )
