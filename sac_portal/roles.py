from enum import Enum


class Role(str, Enum):
    STUDENT = "student"
    EXEC = "exec"
    TEACHER = "teacher"
    SUPERADMIN = "superadmin"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown role: {value!r}") from None


# every Role must appear in each table; checked at import time below
DASHBOARDS = {
    Role.STUDENT: "student",
    Role.EXEC: "exec",
    Role.TEACHER: "exec",
    Role.SUPERADMIN: "admin",
}

CAN_GRADE_APPLICATIONS = {
    Role.STUDENT: False,
    Role.EXEC: True,
    Role.TEACHER: True,
    Role.SUPERADMIN: True,
}

CAN_GRADE_INTERVIEWS = {
    Role.STUDENT: False,
    Role.EXEC: False,
    Role.TEACHER: True,
    Role.SUPERADMIN: True,
}

CAN_SCHEDULE = {
    Role.STUDENT: False,
    Role.EXEC: False,
    Role.TEACHER: False,
    Role.SUPERADMIN: True,
}


def check_tables(*tables):
    for table in tables:
        missing = set(Role) - set(table)
        if missing:
            raise RuntimeError(f"role table is missing {sorted(r.value for r in missing)}")


check_tables(DASHBOARDS, CAN_GRADE_APPLICATIONS, CAN_GRADE_INTERVIEWS, CAN_SCHEDULE)


def dashboard_for(role) -> str:
    return DASHBOARDS[Role.parse(role)]


def can_grade_applications(role) -> bool:
    return CAN_GRADE_APPLICATIONS[Role.parse(role)]


def can_grade_interviews(role) -> bool:
    return CAN_GRADE_INTERVIEWS[Role.parse(role)]


def can_schedule(role) -> bool:
    return CAN_SCHEDULE[Role.parse(role)]
