# src/eventsocket/core/commands.py
"""
Outbound command encoding.
Builds the byte sequences for plain commands and sendmsg blocks. Anything that
would let a caller inject an extra line (a raw CR or LF in a command, field or
UUID) is rejected before a single byte is produced.
"""

from typing import Dict, Mapping, Optional

from .interfaces import CommandValidationError

COMMAND_TERMINATOR = "\r\n\r\n"
CONTENT_LENGTH_FIELD = "content-length"


def validate_line(value: str, what: str = "command") -> str:
    """
    Reject values carrying a raw CR or LF.

    Raises:
        CommandValidationError: If the value would break the framing
    """
    if "\r" in value or "\n" in value:
        raise CommandValidationError(f"Invalid {what} contains \\r or \\n: {value!r}")
    return value


def encode_command(command: str) -> bytes:
    """Encode a single command line with its terminator"""
    validate_line(command)
    return f"{command}{COMMAND_TERMINATOR}".encode("utf-8")


def encode_sendmsg(fields: Mapping[str, str], uuid: str = "", payload: str = "") -> bytes:
    """
    Encode a sendmsg block.

    Fields with empty values are left out. The payload is appended only when
    a lower-case "content-length" field is set.

    Example:
        encode_sendmsg({"call-command": "hangup", "hangup-cause": "NORMAL_CLEARING"})
    """
    head = "sendmsg"
    if uuid:
        head += " " + validate_line(uuid, "UUID")
    lines = [head]
    for key, value in fields.items():
        validate_line(key, "field name")
        if value:
            validate_line(value, "field value")
            lines.append(f"{key}: {value}")
    message = "\n".join(lines) + "\n\n"
    if fields.get(CONTENT_LENGTH_FIELD) and payload:
        message += payload
    return message.encode("utf-8")


def execute_fields(app_name: str, app_arg: str = "", lock: Optional[bool] = False) -> Dict[str, str]:
    """
    Fields for "call-command: execute".
    event-lock is only present when locking; its absence means no lock.
    """
    return {
        "call-command": "execute",
        "execute-app-name": app_name,
        "execute-app-arg": app_arg,
        "event-lock": "true" if lock else "",
    }
