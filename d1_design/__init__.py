"""
D1 Design Module

Report design model, programmatic builder and design file persistence.
"""

from .builder import (
    DesignBuilder,
    add_data_set,
    add_data_source,
    add_label,
    add_table,
    build_sample_design,
    new_design,
)
from .models import ConnectionProperties, DataSet, DataSource, Design, LabelElement, LayoutElement, TableElement
from .persistence import load_design, load_design_file, save_design_file, serialize_design
from .store import DesignStore

__all__ = [
    # Models
    "ConnectionProperties",
    "DataSource",
    "DataSet",
    "Design",
    "LabelElement",
    "LayoutElement",
    "TableElement",
    # Builder
    "DesignBuilder",
    "new_design",
    "add_data_source",
    "add_data_set",
    "add_label",
    "add_table",
    "build_sample_design",
    # Persistence
    "serialize_design",
    "load_design",
    "save_design_file",
    "load_design_file",
    "DesignStore",
]
