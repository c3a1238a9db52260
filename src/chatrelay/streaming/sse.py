from typing import List, Optional, Tuple

DONE = "[DONE]"
DATA_PREFIX = "data:"


def frame(line: str) -> bytes:
    """Terminates one `data: ...` line with the blank line SSE requires."""
    return f"{line}\n\n".encode("utf-8")


def split_lines(buffer: str, chunk: str) -> Tuple[List[str], str]:
    """
    Appends `chunk` to `buffer` and splits off every complete line.

    Returns the complete lines and the new buffer: whatever followed the
    last newline, possibly empty.
    """
    pending = buffer + chunk
    lines = pending.split("\n")
    return lines[:-1], lines[-1]


def extract_data(line: str) -> Optional[str]:
    """Payload of a `data:` line, trimmed; None for other or empty lines."""
    if not line.startswith(DATA_PREFIX):
        return None
    data = line[len(DATA_PREFIX):].strip()
    return data or None
