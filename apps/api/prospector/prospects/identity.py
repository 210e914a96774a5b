import re

ID_SEPARATOR = "_"

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_id(domain: str, product: str) -> str:
    """Storage key for a (domain, product) pair.

    Whitespace anywhere in the domain is dropped and the domain is lower-cased;
    the product is appended verbatim, so callers pass the case-folded value.
    """
    return f"{_WHITESPACE_RE.sub('', domain).lower()}{ID_SEPARATOR}{product}"
