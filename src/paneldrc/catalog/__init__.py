"""Catalog domain: panels, components, combinators, placements and their helpers."""

from paneldrc.catalog.helpers import (
    Dimensions,
    SpecDropdowns,
    calculate_combinator_dimensions,
    combinator_dimensions_from_catalog,
    component_types,
    dropdowns_for_type,
    extract_a_values,
    extract_brand_values,
    extract_current_a_values,
    extract_p_values,
    extract_pole_values,
    extract_series_values,
    extract_v_values,
    filter_by_size_and_type,
    filter_combinators_by_size,
    find_component_by_type,
    normalize_gaps,
    panel_size_from_width,
    resolve_combinator_members,
    sort_spec_values,
)
from paneldrc.catalog.loader import (
    load_combinators,
    load_components,
    load_design,
    load_panels,
    parse_design,
)
from paneldrc.catalog.models import (
    GAP_COMPONENT_ID,
    Combinator,
    Component,
    Design,
    Panel,
    Placement,
    parse_number,
)
from paneldrc.catalog.storage import LibraryStore, StorageError

__all__ = [
    "GAP_COMPONENT_ID",
    "Combinator",
    "Component",
    "Design",
    "Dimensions",
    "LibraryStore",
    "Panel",
    "Placement",
    "SpecDropdowns",
    "StorageError",
    "calculate_combinator_dimensions",
    "combinator_dimensions_from_catalog",
    "component_types",
    "dropdowns_for_type",
    "extract_a_values",
    "extract_brand_values",
    "extract_current_a_values",
    "extract_p_values",
    "extract_pole_values",
    "extract_series_values",
    "extract_v_values",
    "filter_by_size_and_type",
    "filter_combinators_by_size",
    "find_component_by_type",
    "load_combinators",
    "load_components",
    "load_design",
    "load_panels",
    "normalize_gaps",
    "panel_size_from_width",
    "parse_design",
    "parse_number",
    "resolve_combinator_members",
    "sort_spec_values",
]
