"""CVLS ASCII command constants and command-text handling.

Commands are opaque ASCII tokens like '&o' or '&l1'. A profile stores its
commands as one string with each token terminated by ';'.
"""

# Queries used directly by the programmer
SERIAL_QUERY = "&z"
FIRMWARE_QUERY = "&f"

TERMINATOR = ";"

# Line endings on the wire
COMMAND_EOL = "\r"
RESPONSE_EOL = "\n"


def split_commands(text: str) -> list[str]:
    """Split terminated command text into tokens, dropping empty ones.

    Kept tokens are passed through unmodified, whitespace included.
    """
    return [token for token in text.split(TERMINATOR) if token]


def join_commands(commands: list[str]) -> str:
    """Render command tokens as terminated text ('&o;&l1;')."""
    return "".join(f"{c}{TERMINATOR}" for c in commands)


def encode_command(command: str) -> bytes:
    return (command + COMMAND_EOL).encode("ascii")


def decode_response(raw: bytes) -> str:
    return raw.decode("ascii", errors="replace").rstrip("\r\n")
