from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


DATABASE_URL = config.DATABASE_URL

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, pool_pre_ping=True)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_portal_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


INDEX_STEPS = [
    ('users', ['email'], True, 'CREATE UNIQUE INDEX IF NOT EXISTS uq_users_email ON users(email)'),
    ('student', ['email'], False, 'CREATE INDEX IF NOT EXISTS idx_student_email ON student(email)'),
    ('teacher', ['email'], False, 'CREATE INDEX IF NOT EXISTS idx_teacher_email ON teacher(email)'),
    (
        'attendance',
        ['student_id', 'date'],
        False,
        'CREATE INDEX IF NOT EXISTS idx_attendance_student_date ON attendance(student_id, date)',
    ),
]


def _has_index(inspector, table_name: str, column_names: list[str], unique: bool) -> bool:
    for index in inspector.get_indexes(table_name):
        if index['column_names'] == column_names and (index.get('unique') or not unique):
            return True

    if unique:
        return any(
            constraint['column_names'] == column_names
            for constraint in inspector.get_unique_constraints(table_name)
        )
    return False


def ensure_portal_schema(bind=None) -> None:
    """Add the indexes that tables created before they were declared lack.

    ``users.email`` must be unique so a concurrent duplicate registration
    fails at commit instead of slipping past the existence check. Tables
    that already carry an equivalent index are left alone.
    """
    global _portal_schema_checked

    if _portal_schema_checked and bind is None:
        return

    target = bind if bind is not None else engine

    with _schema_lock:
        if _portal_schema_checked and bind is None:
            return

        inspector = inspect(target)
        table_names = set(inspector.get_table_names())
        missing_steps = [
            statement
            for table_name, column_names, unique, statement in INDEX_STEPS
            if table_name in table_names and not _has_index(inspector, table_name, column_names, unique)
        ]

        if missing_steps:
            with target.begin() as connection:
                for statement in missing_steps:
                    connection.execute(text(statement))

        if bind is None:
            _portal_schema_checked = True
