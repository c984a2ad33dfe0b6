"""core — deterministic ingestion and emission engine."""
from .emitter import EmissionEngine, EmissionResult, TaskKind, classify_executable
from .exceptions import (
    EmptyExecutableSetError,
    MalformedInputError,
    UnrecognizedNodeWarning,
    UntranslatedConstructWarning,
)
from .ingestor import ingest, parse_package_file, parse_package_xml
from .node import Node
from .package import PackageContents, select_package_contents

__all__ = [
    "EmissionEngine", "EmissionResult", "TaskKind", "classify_executable",
    "EmptyExecutableSetError", "MalformedInputError", "UnrecognizedNodeWarning",
    "UntranslatedConstructWarning", "ingest", "parse_package_file", "parse_package_xml",
    "Node", "PackageContents", "select_package_contents",
]
