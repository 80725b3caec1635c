"""Signup input rules, shared by the signup route and the companion client."""
import random
import re
from datetime import date
from typing import Dict, Optional

EMAIL_RE = re.compile(r"^[^\s@<>]+@[^\s@<>]+\.[^\s@<>]+$", re.IGNORECASE)
USERNAME_RE = re.compile(r"^[a-z0-9_]{3,24}$")
BIRTHDATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MIN_PASSWORD_LENGTH = 8
MAX_NAME_LENGTH = 80
MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 24
MAX_EMAIL_LENGTH = 254

DISPOSABLE_EMAIL_DOMAINS = frozenset({
    "10minutemail.com",
    "dispostable.com",
    "emailondeck.com",
    "fakeinbox.com",
    "guerrillamail.com",
    "maildrop.cc",
    "mailinator.com",
    "mintemail.com",
    "sharklasers.com",
    "temp-mail.org",
    "tempmail.com",
    "tempmailo.com",
    "throwawaymail.com",
    "trashmail.com",
    "yopmail.com",
})

MOVIE_AVATARS = (
    "🎬", "🎭", "🎪", "🎯", "📽️", "🎞️", "📼", "🎥",
    "🍿", "🥤", "🍫", "🍕", "🛋️", "🌙", "⭐", "🌟",
    "🎸", "🎹", "🎤", "🎧",
)


class SignupValidationError(ValueError):
    """Raised with a user-facing message when signup input is rejected."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_username(username: str) -> str:
    return re.sub(r"[^a-z0-9_]", "", username.strip().lower())


def is_valid_username(username: str) -> bool:
    return bool(USERNAME_RE.match(normalize_username(username)))


def email_domain(email: str) -> str:
    at = email.rfind("@")
    if at < 0:
        return ""
    return email[at + 1:].lower()


def is_valid_birthdate(birthdate: str, today: Optional[date] = None) -> bool:
    if not BIRTHDATE_RE.match(birthdate):
        return False
    today = today or date.today()
    year, month, day = (int(part) for part in birthdate.split("-"))
    if year < 1900 or year > today.year:
        return False
    try:
        date(year, month, day)
    except ValueError:
        return False
    return True


def random_movie_avatar() -> str:
    return random.choice(MOVIE_AVATARS)


def validate_signup(
    email: str,
    password: str,
    name: str,
    username: str,
    birthdate: Optional[str] = None,
) -> Dict[str, Optional[str]]:
    """Normalise and check signup fields. Returns the cleaned values or raises SignupValidationError."""
    email = normalize_email(email or "")
    name = (name or "").strip()
    username = normalize_username(username or "")
    birthdate = (birthdate or "").strip()

    if not email or not password or not name or not username:
        raise SignupValidationError("Missing required fields.")
    if not EMAIL_RE.match(email) or len(email) > MAX_EMAIL_LENGTH:
        raise SignupValidationError("Invalid email address.")
    if email_domain(email) in DISPOSABLE_EMAIL_DOMAINS:
        raise SignupValidationError("Temporary/disposable emails are not allowed.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise SignupValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if len(name) > MAX_NAME_LENGTH:
        raise SignupValidationError("Name is too long.")
    if len(username) < MIN_USERNAME_LENGTH:
        raise SignupValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters.")
    if len(username) > MAX_USERNAME_LENGTH:
        raise SignupValidationError(f"Username must be {MAX_USERNAME_LENGTH} characters or fewer.")
    if birthdate and not is_valid_birthdate(birthdate):
        raise SignupValidationError("Invalid birthdate.")

    return {
        "email": email,
        "password": password,
        "name": name,
        "username": username,
        "birthdate": birthdate or None,
    }
