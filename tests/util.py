from datetime import datetime, timedelta
import random

# Log messages pool
LOG_MESSAGES = [
    ("INFO", "Request processed successfully"),
    ("INFO", "User authentication succeeded"),
    ("DEBUG", "Starting data synchronization"),
    ("WARN", "Invalid input received: missing required field"),
    ("ERROR", "Failed to connect to remote server"),
    ("INFO", "Sending email notification"),
    ("WARN", "Slow response time detected"),
    ("DEBUG", "Executing scheduled task"),
    ("ERROR", "Database connection failed"),
    ("INFO", "Cache cleared successfully"),
]


def contains_list(full_list, sub_list) -> bool:
    sub_len = len(sub_list)
    for offset in range(len(full_list) - len(sub_list) + 1):
        if full_list[offset:offset + sub_len] == sub_list:
            return True
    return False


def generate_log_lines(
        start_time: datetime,
        num_lines: int,
        timestamp_format: str = "%Y-%m-%d %H:%M:%S",
        seed: int = 0,
        max_interval: int = 10,
) -> list[tuple[datetime, str]]:
    """
    Generate (timestamp, line) tuples, advancing the time by a random interval
    (0 - max_interval seconds) for each line.
    """
    rnd = random.Random(seed)
    current_time = start_time
    lines = []
    for _ in range(num_lines):
        current_time += timedelta(seconds=rnd.randint(0, max_interval))
        level, message = rnd.choice(LOG_MESSAGES)
        lines.append((current_time, f"{current_time:{timestamp_format}} {level:<6} {message}"))
    return lines


def log_bytes(lines) -> bytes:
    return b"".join(line.encode() + b"\n" for line in lines)


def line_offsets(lines) -> list[int]:
    """Byte offset of the start of each line in log_bytes(lines)."""
    offsets = []
    pos = 0
    for line in lines:
        offsets.append(pos)
        pos += len(line.encode()) + 1
    return offsets


if __name__ == '__main__':
    assert(contains_list([1,2,3,4], [3,4]))
    assert(contains_list([1,2,3,4], [1,2,3,4]))
    assert(contains_list([1,2,3,4], [1,]))
    assert(contains_list([1,2,3,4], []))

    assert(not contains_list([1,2,3,4], [1,2,3,4,5]))
    assert(not contains_list([1,2,3,4], [2,2,3,4]))
