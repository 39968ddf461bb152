"""Sample data for fresh installations."""

import logging
from sqlalchemy.orm import Session

from profrate.db import schemas
from profrate.db.repositories import doctors as doctors_repo

logger = logging.getLogger(__name__)

SAMPLE_DOCTORS = [
    {
        "name": "Dr. Sarah Johnson",
        "department": "Computer Science",
        "title": "Associate Professor",
        "bio": "Expert in machine learning and artificial intelligence with 15 years of teaching experience.",
    },
    {
        "name": "Dr. Michael Chen",
        "department": "Mathematics",
        "title": "Professor",
        "bio": "Specializes in applied mathematics and statistics. Known for clear explanations of complex topics.",
    },
    {
        "name": "Dr. Emily Williams",
        "department": "Physics",
        "title": "Assistant Professor",
        "bio": "Researcher in quantum mechanics with a passion for undergraduate education.",
    },
    {
        "name": "Dr. James Anderson",
        "department": "Computer Science",
        "title": "Professor",
        "bio": "Database systems and software engineering specialist. Industry experience at major tech companies.",
    },
    {
        "name": "Dr. Lisa Martinez",
        "department": "Biology",
        "title": "Associate Professor",
        "bio": "Molecular biology researcher focused on making science accessible to all students.",
    },
]


def seed_sample_doctors(db: Session) -> int:
    """Insert the sample doctors when the table is empty; returns how many were added."""
    if doctors_repo.count_doctors(db) > 0:
        return 0
    for payload in SAMPLE_DOCTORS:
        doctors_repo.create_doctor(db, schemas.DoctorCreate(**payload))
    logger.info("seeded %d sample doctors", len(SAMPLE_DOCTORS))
    return len(SAMPLE_DOCTORS)
