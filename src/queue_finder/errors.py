"""Exception hierarchy for the queue acquisition pipeline."""

from __future__ import annotations

from typing import Iterable


class QueueFinderError(Exception):
    """Base class for all pipeline errors.

    ``user_message`` is the text shown to end users; ``str(error)`` keeps the
    technical detail for logs.
    """

    user_message = "Wystąpił nieoczekiwany błąd."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class ValidationError(QueueFinderError, ValueError):
    user_message = "Wybierz województwo."


# Remote API failures


class RemoteError(QueueFinderError):
    user_message = "Nie udało się pobrać danych."


class InvalidRequest(RemoteError):
    user_message = "Nieprawidłowe zapytanie."


class TransportError(RemoteError, ConnectionError):
    user_message = "Brak połączenia z serwerem. Sprawdź połączenie z internetem."


class DecodeError(RemoteError):
    user_message = "Błąd dekodowania danych."


class HttpError(RemoteError):
    user_message = "Błąd HTTP."

    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"HTTP {status_code}")


class BadRequest(HttpError):
    user_message = "Nieprawidłowe zapytanie."


class NotFound(HttpError):
    user_message = "Nie znaleziono danych."


class RateLimited(HttpError):
    user_message = "Zbyt wiele zapytań. Spróbuj ponownie za chwilę."


class ServerError(HttpError):
    user_message = "Błąd serwera. Spróbuj ponownie później."


def http_error_for_status(status_code: int, detail: str | None = None) -> HttpError:
    """Map a non-2xx status code onto the HTTP error taxonomy."""

    if status_code == 400:
        return BadRequest(status_code, detail)
    if status_code == 404:
        return NotFound(status_code, detail)
    if status_code == 429:
        return RateLimited(status_code, detail)
    if 500 <= status_code <= 599:
        return ServerError(status_code, detail)
    return HttpError(status_code, detail)


# Spreadsheet ingestion failures


class IngestionError(QueueFinderError):
    user_message = "Nie udało się wczytać pliku z danymi."


class NotAnArchive(IngestionError):
    user_message = "Pobrany plik nie jest prawidłowym plikiem Excel."


class HtmlPayload(IngestionError):
    user_message = "Otrzymano stronę HTML zamiast pliku Excel."


class MissingWorksheet(IngestionError):
    user_message = "Nie znaleziono arkusza w pliku Excel."


class HeaderNotFound(IngestionError):
    user_message = "Nie znaleziono wiersza nagłówka."


class MissingRequiredColumns(IngestionError):
    user_message = "Brakuje wymaganych kolumn."

    def __init__(self, found: Iterable[str]) -> None:
        self.found = tuple(found)
        listing = ", ".join(self.found) or "brak"
        super().__init__(f"{self.user_message} Znalezione: {listing}")


class GeocodeUnavailable(QueueFinderError):
    """Raised by geocoders; DistanceResolver turns it into an absent distance."""

    user_message = "Nie udało się ustalić położenia adresu."
