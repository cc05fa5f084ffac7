"""
Log Formatters for JSON and Console Output.

    JsonlFormatter: one JSON object per line, for log files and aggregators.
    ColoredConsoleFormatter: human-readable colored line for the terminal.

Output Examples:
    JSONL (file):
        {"ts":"2024-01-15T14:30:05+03:00","level":2,"tag":"WARN","message":"quota_rejected","request_id":"abc123","extra":{"remaining":0}}

    Console (colored):
        14:30:05 [ WARN  ] (abc123) quota_rejected client=203.0.113.7 remaining=0

Color Schemes:
    Timing (seconds): < 0.1s green, < 1.0s yellow, otherwise red
    remaining:        0 red, <= 3 yellow, otherwise green
    status:           2xx green, 4xx yellow, 5xx red
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from . import colors
from .colors import Colors, get_tag_color


def _colorize(text: str, color: str) -> str:
    # Read the flag at call time; configure_logging() may have refreshed it
    if not colors.USE_COLORS:
        return text
    return f"{color}{text}{Colors.RESET}"


class JsonlFormatter(logging.Formatter):
    """
    Format log records as JSON Lines for file output.

    Output Format:
        {
            "ts": "2024-01-15T14:30:05+03:00",  # ISO timestamp with timezone
            "level": 2,                          # Numeric level (1-4)
            "tag": "INFO",
            "message": "speech_request",
            "request_id": "abc123",
            "event": "synth",                    # Optional
            "seconds": 0.5,                      # Optional
            "extra": {"key": "value"}            # Optional
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).astimezone().isoformat()

        payload: Dict[str, Any] = {
            "ts": ts,
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Format log records with ANSI colors for console output.

    Output Format:
        HH:MM:SS [ TAG   ] (rid) message key=value 0.123s
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")
        msg = record.getMessage()

        parts = [
            _colorize(ts, Colors.DIM),
            _colorize(f"[{tag:^7}]", get_tag_color(tag)),
        ]
        if rid != "-":
            parts.append(_colorize(f"({rid})", Colors.DIM + Colors.CYAN))
        parts.append(msg)

        event = getattr(record, "event", None)
        if event:
            parts.append(_colorize(f"event={event}", Colors.BLUE))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            if seconds < 0.1:
                time_color = Colors.GREEN
            elif seconds < 1.0:
                time_color = Colors.YELLOW
            else:
                time_color = Colors.RED
            parts.append(_colorize(f"{seconds:.3f}s", time_color))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            for k, v in extra_data.items():
                parts.append(_colorize(f"{k}={v}", self._get_field_color(k, v)))

        return " ".join(parts)

    def _get_field_color(self, key: str, value: Any) -> str:
        """
        Get color for a structured field based on key and value.

        Highlights quota exhaustion and failing HTTP statuses so they stand
        out in a busy console.
        """
        if key == "remaining" and isinstance(value, int):
            if value == 0:
                return Colors.RED
            if value <= 3:
                return Colors.YELLOW
            return Colors.GREEN

        if key == "status" and isinstance(value, int):
            if value >= 500:
                return Colors.RED
            if value >= 400:
                return Colors.YELLOW
            return Colors.GREEN

        return Colors.DIM
