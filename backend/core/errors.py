# backend/core/errors.py

from __future__ import annotations


class CoordinatorError(Exception):
    """
    Base class for every failure that is reported back to the originating
    connection instead of crashing the handler.

    Attributes:
        code: Stable machine-readable reason (sent to clients as "code")
        message: Human readable explanation
    """

    code = "error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class RoomNotFound(CoordinatorError):
    code = "room_not_found"
    default_message = "Room not found."


class RoomAlreadyExists(CoordinatorError):
    code = "room_already_exists"
    default_message = "Room ID already exists. Try joining as speaker."


class InvalidPassword(CoordinatorError):
    code = "invalid_password"
    default_message = "Invalid room password for speaker access."


class InvalidAdminSecret(CoordinatorError):
    code = "invalid_admin_secret"
    default_message = "Valid admin secret required to create a new room."


class CreationDisabled(CoordinatorError):
    code = "creation_disabled"
    default_message = "New room creation is currently disabled by server configuration."


class Unauthorized(CoordinatorError):
    code = "unauthorized"
    default_message = "Unauthorized."


class EmptyInput(CoordinatorError):
    code = "empty_input"
    default_message = "Transcript is empty."


class MessageNotFound(CoordinatorError):
    code = "not_found"
    default_message = "Message not found."


# Outside the fanned-out target set, so a NotFound outcome
class UnsupportedLanguage(MessageNotFound):
    code = "unsupported_language"
    default_message = "Unsupported target language."


class TranslationUnavailable(CoordinatorError):
    code = "translation_unavailable"
    default_message = "Translation not available."


class GatewayUnconfigured(TranslationUnavailable):
    code = "gateway_unconfigured"
    default_message = "Translation service not configured."


class TranslationError(Exception):
    """Raised by translator backends for a single failed translate call."""
