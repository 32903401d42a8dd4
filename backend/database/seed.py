"""
Load demo data: one admin, three users, seven events and a few registrations.

Existing users, events and registrations are removed first.

    python -m backend.database.seed
"""

import logging
import sys
from datetime import date
from typing import Any, Dict, Optional

from argon2 import PasswordHasher

from backend.database.store import EntityStore

logger = logging.getLogger(__name__)

ADMIN = {"name": "Admin User", "email": "admin@eventhub.com", "password": "admin123", "phone": "+1 555-0100"}

USERS = [
    {"name": "John Doe", "email": "user@eventhub.com", "password": "user123", "phone": "+1 555-0101"},
    {"name": "Jane Smith", "email": "jane@example.com", "password": "password123", "phone": "+1 555-0102"},
    {"name": "Mike Johnson", "email": "mike@example.com", "password": "password123", "phone": "+1 555-0103"},
]

EVENTS = [
    {
        "title": "Tech Innovation Summit 2024",
        "description": "Keynotes from leading tech companies, workshops on AI and machine learning, "
                       "networking sessions and startup pitch competitions.",
        "date": date(2024, 12, 25),
        "time": "09:00 AM",
        "category": "Conference",
        "venue": "University Main Auditorium",
        "location": {"lat": 40.7128, "lng": -74.0060, "address": "123 University Ave, New York, NY 10001"},
        "image": "event-tech.jpg",
        "capacity": 500,
    },
    {
        "title": "Spring Music Festival",
        "description": "Local bands, solo artists and DJ sets across multiple stages, with food trucks "
                       "and art installations.",
        "date": date(2024, 12, 28),
        "time": "06:00 PM",
        "category": "Concert",
        "venue": "Campus Open Ground",
        "location": {"lat": 40.7580, "lng": -73.9855, "address": "456 Campus Drive, New York, NY 10002"},
        "image": "event-concert.jpg",
        "capacity": 1000,
    },
    {
        "title": "Web Development Workshop",
        "description": "Hands-on introduction to HTML, CSS, modern JavaScript, React and deployment. "
                       "Laptops required.",
        "date": date(2024, 12, 30),
        "time": "10:00 AM",
        "category": "Workshop",
        "venue": "Computer Science Lab Building",
        "location": {"lat": 40.7489, "lng": -73.9680, "address": "789 Tech Lane, New York, NY 10003"},
        "image": "event-workshop.jpg",
        "capacity": 50,
    },
    {
        "title": "Annual Sports Tournament",
        "description": "Inter-university basketball, soccer, volleyball, track and field and swimming, "
                       "with team and individual categories.",
        "date": date(2025, 1, 5),
        "time": "08:00 AM",
        "category": "Sports",
        "venue": "University Sports Complex",
        "location": {"lat": 40.7614, "lng": -73.9776, "address": "321 Athletic Way, New York, NY 10004"},
        "image": "event-sports.jpg",
        "capacity": 300,
    },
    {
        "title": "International Cultural Night",
        "description": "Traditional performances, music, dance and cuisine from around the world.",
        "date": date(2025, 1, 10),
        "time": "07:00 PM",
        "category": "Cultural",
        "venue": "Student Center Main Hall",
        "location": {"lat": 40.7400, "lng": -74.0000, "address": "555 Student Plaza, New York, NY 10005"},
        "image": "event-cultural.jpg",
        "capacity": 400,
    },
    {
        "title": "Career Networking Event",
        "description": "Meet recruiters, learn about internships, and take part in mock interviews. "
                       "Bring copies of your resume.",
        "date": date(2025, 1, 15),
        "time": "05:00 PM",
        "category": "Networking",
        "venue": "Business School Conference Center",
        "location": {"lat": 40.7350, "lng": -74.0100, "address": "888 Business Blvd, New York, NY 10006"},
        "image": "event-networking.jpg",
        "capacity": 200,
    },
    {
        "title": "AI & Machine Learning Seminar",
        "description": "Industry and academic speakers on current AI trends, applied ML, ethics and careers.",
        "date": date(2025, 1, 20),
        "time": "02:00 PM",
        "category": "Seminar",
        "venue": "Engineering Lecture Hall",
        "location": {"lat": 40.7500, "lng": -73.9950, "address": "101 Innovation Street, New York, NY 10007"},
        "image": "event-tech.jpg",
        "capacity": 150,
    },
]

# (user index, event index) pairs
REGISTRATIONS = [(0, 0), (0, 1), (1, 0), (1, 2), (2, 1)]


def seed(store: Any, ph: Optional[PasswordHasher] = None) -> Dict[str, int]:
    """
    Replace all data with the demo set in one transaction.

    Returns:
        dict: Collection counts after seeding.
    """
    ph = ph or PasswordHasher()

    with store.transaction() as tx:
        tx.truncate_all()

        admin = tx.insert_user(
            name=ADMIN["name"],
            email=ADMIN["email"],
            password_hash=ph.hash(ADMIN["password"]),
            phone=ADMIN["phone"],
            role="admin",
        )
        users = [
            tx.insert_user(
                name=u["name"],
                email=u["email"],
                password_hash=ph.hash(u["password"]),
                phone=u["phone"],
            )
            for u in USERS
        ]
        events = [tx.insert_event(e, created_by=admin["user_id"]) for e in EVENTS]

        for user_index, event_index in REGISTRATIONS:
            tx.insert_registration(users[user_index]["user_id"], events[event_index]["event_id"])

        counts = tx.count_all()

    logger.info(
        f"Seeded {counts['total_users']} users, {counts['total_events']} events, "
        f"{counts['total_registrations']} registrations"
    )
    return counts


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")
    try:
        seed(EntityStore())
    except Exception as e:
        logger.error(f"Error seeding database: {e}")
        sys.exit(1)

    print("\n=== Database Seeded Successfully ===\n")
    print("Admin Login:")
    print(f"  Email: {ADMIN['email']}")
    print(f"  Password: {ADMIN['password']}\n")
    print("User Login:")
    print(f"  Email: {USERS[0]['email']}")
    print(f"  Password: {USERS[0]['password']}\n")
