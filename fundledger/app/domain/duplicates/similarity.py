"""
Text similarity used to compare payees and descriptions.
"""


def levenshtein_distance(source: str, target: str) -> int:
    """Minimum number of single-character edits turning source into target."""
    if not source:
        return len(target)
    if not target:
        return len(source)

    previous = list(range(len(target) + 1))
    for i, source_char in enumerate(source, start=1):
        current = [i]
        for j, target_char in enumerate(target, start=1):
            cost = 0 if source_char == target_char else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def string_similarity(first: str, second: str) -> float:
    """
    Similarity in [0, 1] between two strings, ignoring case and outer whitespace.

    Equal strings score 1.0, a string containing the other scores 0.9,
    anything else scores 1 - distance / longest length.
    """
    if not first or not second:
        return 0.0

    first = first.lower().strip()
    second = second.lower().strip()

    if first == second:
        return 1.0
    if not first or not second:
        return 0.0
    if first in second or second in first:
        return 0.9

    longest = max(len(first), len(second))
    return 1.0 - levenshtein_distance(first, second) / longest
