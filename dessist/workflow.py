"""
workflow.py
===========
Conversion workflow orchestration.

This module is the single coordinator between callers (the CLI, library
users) and the deterministic core (ingestor, package selection, emission
engine).

Responsibilities:
    - Own the conversion as a finite state machine: parse → emit → write.
    - Convert fatal core errors into a failed phase with a readable message.
    - Emit structured workflow events so front-ends can render progress and
      diagnostics without touching core internals.
    - Open the output file only once a full program exists, so nothing is
      written for packages that fail or contain no executables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Callable

from dessist.config import GeneratorOptions
from dessist.core.boilerplate import TemplateProvider
from dessist.core.emitter import EmissionEngine, EmissionResult
from dessist.core.exceptions import DessistError
from dessist.core.ingestor import parse_package_file, parse_package_xml
from dessist.core.node import Node
from dessist.core.package import PackageContents, select_package_contents

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Workflow state machine
# ---------------------------------------------------------------------------


class WorkflowPhase(Enum):
    """
    Ordered phases of a conversion.

    Transitions are strictly enforced; no phase can be entered unless its
    prerequisite phase completed successfully.
    """
    IDLE = auto()
    PARSING = auto()
    PARSED = auto()
    EMITTING = auto()
    EMITTED = auto()
    WRITING = auto()
    DONE = auto()
    ERROR = auto()


_NEXT_PHASES: dict[WorkflowPhase, frozenset[WorkflowPhase]] = {
    WorkflowPhase.IDLE: frozenset({WorkflowPhase.PARSING}),
    WorkflowPhase.PARSING: frozenset({WorkflowPhase.PARSED, WorkflowPhase.ERROR}),
    WorkflowPhase.PARSED: frozenset({WorkflowPhase.EMITTING, WorkflowPhase.PARSING}),
    WorkflowPhase.EMITTING: frozenset({WorkflowPhase.EMITTED, WorkflowPhase.ERROR}),
    WorkflowPhase.EMITTED: frozenset({WorkflowPhase.WRITING, WorkflowPhase.PARSING}),
    WorkflowPhase.WRITING: frozenset({WorkflowPhase.DONE, WorkflowPhase.ERROR}),
    WorkflowPhase.DONE: frozenset({WorkflowPhase.PARSING}),
    WorkflowPhase.ERROR: frozenset({WorkflowPhase.PARSING}),
}


# ---------------------------------------------------------------------------
# Event system
# ---------------------------------------------------------------------------


class EventKind(Enum):
    PHASE_CHANGED = "phase_changed"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class WorkflowEvent:
    """Immutable event emitted by the agent for front-ends to consume."""
    kind: EventKind
    message: str
    payload: dict = field(default_factory=dict)


EventCallback = Callable[[WorkflowEvent], None]


@dataclass
class WorkflowState:
    """Typed container for all mutable workflow state."""
    phase: WorkflowPhase = WorkflowPhase.IDLE
    package_name: str | None = None
    root: Node | None = None
    contents: PackageContents | None = None
    emission: EmissionResult | None = None
    output_path: Path | None = None
    error_message: str | None = None

    @property
    def can_emit(self) -> bool:
        return self.phase == WorkflowPhase.PARSED and self.root is not None

    @property
    def can_write(self) -> bool:
        return self.phase == WorkflowPhase.EMITTED and self.emission is not None


# ---------------------------------------------------------------------------
# Main agent
# ---------------------------------------------------------------------------


class ConversionAgent:
    """
    Drives one package through parse, emit and write.

    Example
    -------
    ::

        agent = ConversionAgent(GeneratorOptions(use_smo=False))
        agent.subscribe(print)
        if agent.run("Nightly.dtsx", "out/"):
            print(agent.state.output_path)
    """

    def __init__(
        self,
        options: GeneratorOptions | None = None,
        templates: TemplateProvider | None = None,
        state: WorkflowState | None = None,
    ) -> None:
        self.options = options or GeneratorOptions()
        self._templates = templates
        self._state = state or WorkflowState()
        self._callbacks: list[EventCallback] = []

    @property
    def state(self) -> WorkflowState:
        return self._state

    # ------------------------------------------------------------------
    # Event subscription
    # ------------------------------------------------------------------

    def subscribe(self, callback: EventCallback) -> None:
        """Register a callback to receive WorkflowEvents."""
        self._callbacks.append(callback)

    def _notify(self, kind: EventKind, message: str, **payload) -> None:
        event = WorkflowEvent(kind=kind, message=message, payload=payload)
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber %r failed on %s event.", callback, kind.value)

    # ------------------------------------------------------------------
    # Phase 1: Parse
    # ------------------------------------------------------------------

    def parse(self, package_path: str | Path) -> bool:
        """Ingest a `.dtsx` file. Returns False on failure (message in state)."""
        path = Path(package_path)
        return self._parse(lambda: parse_package_file(path, self.options.content_precedence), path.stem)

    def parse_text(self, raw: str | bytes, package_name: str = "Package") -> bool:
        """Ingest package XML already held in memory."""
        return self._parse(lambda: parse_package_xml(raw, self.options.content_precedence), package_name)

    def _parse(self, load: Callable[[], Node], package_name: str) -> bool:
        self._enter(WorkflowPhase.PARSING)
        self._notify(EventKind.INFO, f"Reading package '{package_name}'…")

        try:
            root = load()
        except DessistError as exc:
            return self._abort(f"Package parse failed: {exc}")

        self._state.package_name = package_name
        self._state.root = root
        self._state.contents = None
        self._state.emission = None
        self._state.output_path = None
        self._state.error_message = None

        self._enter(WorkflowPhase.PARSED)
        self._notify(
            EventKind.INFO,
            f"Package '{package_name}' parsed — root {root.kind} with {len(root.children)} children.",
            package_name=package_name,
        )
        return True

    # ------------------------------------------------------------------
    # Phase 2: Emit
    # ------------------------------------------------------------------

    def emit(self) -> bool:
        """Select package contents and run the emission engine."""
        if not self._state.can_emit:
            return self._reject("Cannot emit: package has not been successfully parsed.")

        self._enter(WorkflowPhase.EMITTING)
        contents = select_package_contents(self._state.root, self._state.package_name)  # type: ignore[arg-type]
        self._state.contents = contents

        engine = EmissionEngine(self.options, self._templates)
        try:
            result = engine.emit_program(contents)
        except DessistError as exc:
            return self._abort(str(exc))

        for message in result.diagnostics:
            self._notify(EventKind.WARNING, message)

        self._state.emission = result
        self._enter(WorkflowPhase.EMITTED)
        self._notify(
            EventKind.INFO,
            f"Emitted {len(result.functions)} top-level functions; entry point {result.entry_point}().",
            entry_point=result.entry_point,
            untranslated=result.untranslated_count,
        )
        return True

    # ------------------------------------------------------------------
    # Phase 3: Write
    # ------------------------------------------------------------------

    def write(self, output_folder: str | Path) -> bool:
        """Write the emitted program into `output_folder`."""
        if not self._state.can_write:
            return self._reject("Cannot write: nothing has been emitted.")

        self._enter(WorkflowPhase.WRITING)
        target = Path(output_folder) / self.options.output_filename
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("w", encoding="utf-8", newline="\n") as fh:
                fh.write(self._state.emission.full_code)  # type: ignore[union-attr]
        except OSError as exc:
            return self._abort(f"Cannot write '{target}': {exc}")

        self._state.output_path = target
        self._enter(WorkflowPhase.DONE)
        self._notify(EventKind.INFO, f"Wrote {target}.", output_path=str(target))
        return True

    def run(self, package_path: str | Path, output_folder: str | Path) -> bool:
        """Parse, emit and write in one go; stops at the first failed phase."""
        return self.parse(package_path) and self.emit() and self.write(output_folder)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _enter(self, phase: WorkflowPhase) -> None:
        previous = self._state.phase
        if phase not in _NEXT_PHASES[previous]:
            raise RuntimeError(f"Invalid workflow transition: cannot enter {phase.name} from {previous.name}.")
        self._state.phase = phase
        logger.debug("Phase %s -> %s", previous.name, phase.name)
        self._notify(EventKind.PHASE_CHANGED, f"Phase: {phase.name}", current=phase.name)

    def _abort(self, message: str) -> bool:
        """Move the running phase into ERROR and report why."""
        logger.error("Conversion failed: %s", message)
        self._state.error_message = message
        self._enter(WorkflowPhase.ERROR)
        self._notify(EventKind.ERROR, message)
        return False

    def _reject(self, message: str) -> bool:
        """Refuse an out-of-order call; the current phase is left as it is."""
        logger.warning(message)
        self._notify(EventKind.WARNING, message)
        return False
