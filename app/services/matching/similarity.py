"""String similarity used to score partial name matches."""


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance: unit-cost substitution, insertion and deletion."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + (char_a != char_b),  # substitution
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Normalized similarity in [0, 1].

    1 - distance / max(len(a), len(b)) on lower-cased input; two empty
    strings are identical.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return max(0.0, 1.0 - levenshtein(a.lower(), b.lower()) / longest)
