"""
db_logger.py
Protokolliert in die Konsole (Flask-Logger) und in die Tabelle `logs`.
Logs to the console (Flask logger) and to the `logs` table.
"""

import logging
from typing import Any, Dict, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db, LogEntry

LOG_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warn': logging.WARNING,
    'error': logging.ERROR,
}


def console_log(level: str, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
    """
    Nur Konsole, keine Speicherung in der Datenbank.
    Console only, nothing is stored in the database.
    """
    current_app.logger.log(LOG_LEVELS.get(level, logging.INFO), f"[{level.upper()}] {message} {metadata or {}}")


def log_event(level: str, message: str, metadata: Optional[Dict[str, Any]] = None) -> Optional[LogEntry]:
    """
    Schreibt einen Eintrag in die Konsole und in die Tabelle `logs`.
    Ein Fehler beim Speichern wird protokolliert, aber nicht weitergereicht.

    Writes an entry to the console and to the `logs` table.
    A failure while storing is logged but not propagated.

    Returns:
        LogEntry | None: Die gespeicherte Zeile oder None bei Fehler.
                         The stored row, or None on failure.
    """
    console_log(level, message, metadata)
    try:
        entry = LogEntry(level=level, message=message, details=metadata or {})
        db.session.add(entry)
        db.session.commit()
        return entry
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to save log to the logs table: {e}")
        return None


def save_operation_log(operation_name: str, result: Dict[str, Any]) -> Optional[LogEntry]:
    """Stores the final result of an operation (e.g. 'movieshows_sync')."""
    return log_event('info', f"Operation completed: {operation_name}", result)


def log_info(message: str, metadata: Optional[Dict[str, Any]] = None) -> Optional[LogEntry]:
    return log_event('info', message, metadata)


def log_warn(message: str, metadata: Optional[Dict[str, Any]] = None) -> Optional[LogEntry]:
    return log_event('warn', message, metadata)


def log_error(message: str, metadata: Optional[Dict[str, Any]] = None) -> Optional[LogEntry]:
    return log_event('error', message, metadata)
