"""Backend error code -> (field, user-facing message)."""

from __future__ import annotations

GENERIC_MESSAGE = "An unexpected error occurred. Please try again."
INVALID_CREDENTIALS = "Invalid credentials. Please check your email/username and password."

FieldMessage = tuple["str | None", str]

_NETWORK = {
    "auth/network-request-failed": (None, "Network error. Please check your internet connection and try again."),
    "auth/too-many-requests": (None, "Too many failed attempts. Please try again later."),
    "store/unavailable": (None, "Database service is temporarily unavailable. Please try again later."),
    "store/deadline-exceeded": (None, "Request timed out. Please check your connection and try again."),
}

LOGIN_MESSAGES: dict[str, FieldMessage] = {
    **_NETWORK,
    "auth/user-not-found": ("email_or_username", "No account found with this email or username."),
    "auth/wrong-password": ("password", "Incorrect password. Please try again."),
    "auth/invalid-email": ("email_or_username", "Please enter a valid email address."),
    "auth/invalid-credential": (None, INVALID_CREDENTIALS),
    "auth/user-disabled": (None, "This account has been disabled. Please contact support."),
    "store/permission-denied": (None, "Permission denied. Unable to verify user. Please contact support."),
}

REGISTRATION_MESSAGES: dict[str, FieldMessage] = {
    **_NETWORK,
    "auth/email-already-in-use": (
        "email",
        "An account with this email address already exists. Please use a different email or try signing in.",
    ),
    "auth/invalid-email": ("email", "Please enter a valid email address."),
    "auth/weak-password": (
        "password",
        "Password is too weak. Please choose a stronger password with at least 8 characters.",
    ),
    "auth/operation-not-allowed": (None, "Email/password accounts are not enabled. Please contact support."),
    "store/permission-denied": (
        None,
        "Permission denied. Unable to create user profile. Please contact support.",
    ),
}

SOCIAL_MESSAGES: dict[str, FieldMessage] = {
    **_NETWORK,
    "auth/operation-not-allowed": (None, "Google sign-in is not enabled. Please contact support."),
    "auth/invalid-credential": (None, "Google sign-in failed. Please try again."),
    "auth/user-disabled": (None, "This account has been disabled. Please contact support."),
    "store/permission-denied": (
        None,
        "Permission denied. Unable to create user profile. Please contact support.",
    ),
}

WRITE_MESSAGES: dict[str, FieldMessage] = {
    **_NETWORK,
    "store/permission-denied": (None, "Permission denied. Please sign in again."),
    "store/unauthenticated": (None, "Your session has expired. Please sign in again."),
}

UNIQUENESS_MESSAGES = {
    "email": "An account with this email address already exists.",
    "username": "This username is already taken. Please choose a different one.",
}


def lookup(messages: dict[str, FieldMessage], code: str, default: str = GENERIC_MESSAGE) -> FieldMessage:
    return messages.get(code, (None, default))
