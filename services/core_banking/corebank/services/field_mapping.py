"""
Field mapping engine: converts canonical records to vendor payloads and back.

Vendor field paths are dot separated (``data.attributes.amount``). Mappings are
applied in order; each owns one path, and later mappings that target the same
name overwrite earlier ones.
"""
from typing import Any, Dict, List, Sequence

from corebank.obs.logging import get_logger
from corebank.schemas.integration import FieldMappingSchema
from corebank.services.transformations import apply_transformation, reverse_transformation

logger = get_logger(__name__)

PATH_SEPARATOR = "."

# Distinguishes "absent" from an explicit null
MISSING = object()


def get_nested_value(obj: Any, path: str, default: Any = None) -> Any:
    """Read a dotted path, returning default when any segment is absent."""
    current = obj
    for key in path.split(PATH_SEPARATOR):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default
    return current


def set_nested_value(obj: Dict[str, Any], path: str, value: Any) -> None:
    """Write a dotted path, creating intermediate objects as needed."""
    keys = path.split(PATH_SEPARATOR)
    current = obj
    for key in keys[:-1]:
        child = current.get(key)
        if not isinstance(child, dict):
            child = {}
            current[key] = child
        current = child
    current[keys[-1]] = value


def _read_canonical(record: Dict[str, Any], field: str) -> Any:
    # Flat key first; dotted canonical names fall back to nested lookup
    if field in record:
        return record[field]
    if PATH_SEPARATOR in field:
        return get_nested_value(record, field, MISSING)
    return MISSING


def _resolve_outbound_value(record: Dict[str, Any], mapping: FieldMappingSchema) -> Any:
    value = _read_canonical(record, mapping.obelixia_field)
    if (value is MISSING or value is None) and mapping.default_value is not None:
        return mapping.default_value
    return value


def transform_outbound(record: Dict[str, Any], mappings: Sequence[FieldMappingSchema]) -> Dict[str, Any]:
    """
    Build a vendor payload from a canonical record.

    With no mappings configured the record passes through unchanged.
    Required mappings fall back to their default value; a required mapping
    with neither a value nor a default is skipped and logged.
    """
    if not mappings:
        return dict(record)

    payload: Dict[str, Any] = {}
    for mapping in mappings:
        if not mapping.direction.is_outbound:
            continue

        value = _resolve_outbound_value(record, mapping)
        if value is MISSING:
            if mapping.is_required:
                logger.warning(
                    f"Required field {mapping.obelixia_field} has no value and no default, skipping",
                    extra={"field": mapping.obelixia_field},
                )
            continue

        # Explicit nulls are written as-is rather than coerced by the rule
        if value is not None:
            value = apply_transformation(value, mapping.transformation_rule)
        set_nested_value(payload, mapping.core_field, value)

    return payload


def transform_inbound(payload: Dict[str, Any], mappings: Sequence[FieldMappingSchema]) -> Dict[str, Any]:
    """
    Build a canonical record from a vendor payload using each rule's inverse.

    With no mappings configured the payload passes through unchanged.
    """
    if not mappings:
        return dict(payload)

    record: Dict[str, Any] = {}
    for mapping in mappings:
        if not mapping.direction.is_inbound:
            continue

        value = get_nested_value(payload, mapping.core_field, MISSING)
        if value is MISSING:
            continue

        if value is not None:
            value = reverse_transformation(value, mapping.transformation_rule)
        record[mapping.obelixia_field] = value

    return record


def find_missing_required(record: Dict[str, Any], mappings: Sequence[FieldMappingSchema]) -> List[str]:
    """Canonical names of required outbound mappings that had no value and no default."""
    missing = []
    for mapping in mappings:
        if not (mapping.direction.is_outbound and mapping.is_required):
            continue
        value = _resolve_outbound_value(record, mapping)
        if value is MISSING:
            missing.append(mapping.obelixia_field)
    return missing
