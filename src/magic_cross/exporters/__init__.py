"""Writers for the merged HAPPY dataset and the cross dataset."""

from magic_cross.exporters.happy import HappyExporter
from magic_cross.exporters.qtl2 import CrossTables, Qtl2Exporter, build_manifest, build_tables

__all__ = [
    "HappyExporter",
    "CrossTables",
    "Qtl2Exporter",
    "build_manifest",
    "build_tables",
]
