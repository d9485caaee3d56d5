"""Read access to student contact records."""

import re
from typing import TYPE_CHECKING

from studio.models import Student

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

STUDENTS_TABLE = "students"

# External references minted by the application: student-<id>-<millis> or
# student-<id>-registration (public sign-up form).
STUDENT_REFERENCE_PATTERN = re.compile(
    r"^student-(?P<student_id>.+?)-(?:\d{10,}|registration)$"
)


def student_id_from_reference(external_reference: str | None) -> str | None:
    """Extract the student ID embedded in an external reference, if any."""
    if not external_reference:
        return None
    match = STUDENT_REFERENCE_PATTERN.match(external_reference)
    return match.group("student_id") if match else None


def get_student(db: "DynamoDBService", student_id: str) -> Student | None:
    item = db.get_item(STUDENTS_TABLE, {"student_id": student_id})
    return Student.from_item(item) if item else None
