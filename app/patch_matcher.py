import re

from logging_config import get_logger

logger = get_logger("patch_matcher", "travel.log")

# Plus Code prefix, e.g. "2HCR+WM Krk, Croatia" → "Krk, Croatia"
PLUS_CODE = re.compile(r"^[A-Z0-9]{4}\+[A-Z0-9]{2,3}\s+")


def strip_plus_code(address: str) -> str:
    return PLUS_CODE.sub("", address, count=1)


class PatchMatcher:
    """
    Fuzzy lookup of user travel patches keyed by address. Normalizers are tried
    in order; the first one that yields a known key wins.
    """

    normalizers = (
        lambda address: address,
        strip_plus_code,
    )

    def __init__(self, patches: dict):
        self.patches = patches or {}

    def lookup(self, address: str) -> dict:
        if not address:
            return {}

        for normalize in self.normalizers:
            key = normalize(address)
            if key in self.patches:
                if key != address:
                    logger.info(f"Matched '{address}' → '{key}'")
                return self.patches[key]

        return {}
