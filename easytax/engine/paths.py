"""Path matcher for /taxCodes[/{zone}[/{product}[/{code}]]] resource paths."""

from dataclasses import dataclass

RESOURCE_ROOT = "/taxCodes"
MAX_SEGMENTS = 3


@dataclass(frozen=True)
class TaxCodePrefix:
    """Partial (zone, product, code) key. Missing trailing parts are wildcards."""

    tax_zone: str | None = None
    product_name: str | None = None
    tax_code: str | None = None

    def __post_init__(self):
        defined = [p is not None for p in (self.tax_zone, self.product_name, self.tax_code)]
        # Once a part is missing, every later part must be missing too
        if defined != sorted(defined, reverse=True):
            raise ValueError("prefix parts must be contiguous from tax_zone")
        if any(p == "" for p in (self.tax_zone, self.product_name, self.tax_code)):
            raise ValueError("prefix parts cannot be empty")

    def segments(self) -> tuple[str, ...]:
        """The defined parts, in order."""
        return tuple(
            p for p in (self.tax_zone, self.product_name, self.tax_code) if p is not None
        )

    @property
    def is_complete(self) -> bool:
        """True when zone, product and code are all present."""
        return len(self.segments()) == MAX_SEGMENTS

    def matches(self, tax_zone: str, product_name: str, tax_code: str) -> bool:
        """Whether a record key falls under this prefix."""
        key = (tax_zone, product_name, tax_code)
        return all(want == have for want, have in zip(self.segments(), key))


EVERYTHING = TaxCodePrefix()


def split_segments(path: str) -> list[str] | None:
    """Segments below the resource root, or None if the path is not under it."""
    if path == RESOURCE_ROOT:
        return []
    if not path.startswith(RESOURCE_ROOT + "/"):
        return None
    return path[len(RESOURCE_ROOT) + 1 :].split("/")


def validate_shape(segments: list[str]) -> bool:
    """0-3 segments, none of them empty."""
    return len(segments) <= MAX_SEGMENTS and all(segments)


def match_tax_code_path(path: str) -> TaxCodePrefix | None:
    """Parse a resource path into a key prefix.

    Returns None when the path does not address the tax code resource:
    anything outside /taxCodes, more than three segments below it, or an
    empty segment (including a trailing slash).
    """
    segments = split_segments(path)
    if segments is None or not validate_shape(segments):
        return None
    return TaxCodePrefix(*segments)
