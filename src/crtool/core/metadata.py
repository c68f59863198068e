"""Ingredient metadata merging.

A metadata block has two kinds of fields: the ones the C2PA assertion
metadata model recognizes (``dateTime``, ``reviewRatings`` ...) and any
number of caller-defined fields (``com.example.asset-id`` ...). Both kinds
are serialized as siblings in one flat object, so a custom field must never
share a name with a recognized one.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from .errors import MalformedConfiguration, MetadataFieldCollision

# Textual format for auto-generated timestamps (UTC)
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# JSON key -> (attribute name, expected JSON type(s))
RECOGNIZED_FIELDS: dict[str, tuple[str, type | tuple[type, ...]]] = {
    "dateTime": ("date_time", str),
    "reviewRatings": ("review_ratings", list),
    "dataSource": ("data_source", dict),
    "regionOfInterest": ("region_of_interest", dict),
    "localizations": ("localizations", list),
    "reference": ("reference", dict),
}

_TYPE_NAMES = {str: "a string", list: "an array", dict: "an object"}


def check_field_type(key: str, value: Any, key_path: str | None = None) -> None:
    """Check that a recognized field carries the JSON type it requires.

    Raises:
        MalformedConfiguration: If ``key`` is recognized and ``value`` has the wrong type
    """
    if key not in RECOGNIZED_FIELDS:
        return
    _, expected = RECOGNIZED_FIELDS[key]
    if not isinstance(value, expected):
        raise MalformedConfiguration(
            key_path or key, f"must be {_TYPE_NAMES.get(expected, str(expected))}"
        )


def current_timestamp() -> str:
    """Return the current UTC wall-clock time in ``TIMESTAMP_FORMAT``."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


@dataclass
class MetadataBlock:
    """Per-ingredient metadata: typed recognized fields plus an open field set.

    Attributes:
        date_time: Timestamp of the metadata (``dateTime``)
        review_ratings: List of review rating objects (``reviewRatings``)
        data_source: Data source object (``dataSource``)
        region_of_interest: Region of interest object (``regionOfInterest``)
        localizations: Localization dictionaries (``localizations``)
        reference: Hashed URI reference object (``reference``)
        custom: Caller-defined fields, in insertion order
    """

    date_time: str | None = None
    review_ratings: list[Any] | None = None
    data_source: dict[str, Any] | None = None
    region_of_interest: dict[str, Any] | None = None
    localizations: list[Any] | None = None
    reference: dict[str, Any] | None = None
    custom: dict[str, Any] = field(default_factory=dict)

    def set_field(self, key: str, value: Any, key_path: str | None = None) -> None:
        """Set a field, routing recognized keys to their typed attribute.

        Raises:
            MalformedConfiguration: If a recognized key has the wrong JSON type
        """
        if key in RECOGNIZED_FIELDS:
            check_field_type(key, value, key_path)
            setattr(self, RECOGNIZED_FIELDS[key][0], value)
        else:
            self.custom[key] = value

    def add_custom(self, key: str, value: Any) -> None:
        """Add a caller-defined field.

        Raises:
            MetadataFieldCollision: If ``key`` is a recognized field name
        """
        if key in RECOGNIZED_FIELDS:
            raise MetadataFieldCollision(key)
        self.custom[key] = value

    def to_dict(self) -> dict[str, Any]:
        """Serialize recognized and custom fields into one flat object.

        Unset recognized fields are omitted, and an empty custom set adds
        nothing.

        Raises:
            MetadataFieldCollision: If a custom key shadows a recognized one
        """
        result: dict[str, Any] = {}
        for key, (attr, _) in RECOGNIZED_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                result[key] = value
        for key, value in self.custom.items():
            if key in RECOGNIZED_FIELDS:
                raise MetadataFieldCollision(key)
            result[key] = value
        return result


def merge_metadata(
    declared: Mapping[str, Any],
    extra: Mapping[str, Any] | None = None,
    key_path: str = "metadata",
    clock: Callable[[], str] = current_timestamp,
) -> MetadataBlock:
    """Build a MetadataBlock from declared metadata and extra custom fields.

    Recognized keys in ``declared`` populate typed fields, the rest are
    kept as custom fields. ``extra`` holds custom fields supplied by the
    caller; they are not allowed to use recognized names. When no
    ``dateTime`` was given, one is generated from ``clock``.

    Args:
        declared: Sparse metadata object from the manifest description
        extra: Additional caller-defined fields
        key_path: Location of ``declared`` for error messages
        clock: Timestamp source for the auto-generated ``dateTime``

    Returns:
        The merged MetadataBlock

    Raises:
        MalformedConfiguration: If a recognized field has the wrong type
        MetadataFieldCollision: If an extra field uses a recognized name
    """
    block = MetadataBlock()
    for key, value in declared.items():
        block.set_field(key, value, key_path=f"{key_path}.{key}")

    for key, value in (extra or {}).items():
        block.add_custom(key, value)

    if block.date_time is None:
        block.date_time = clock()

    return block
