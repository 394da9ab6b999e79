"""
AoH Toolkit — Shared Base Tool
===============================
Template for toolkit commands: check every precondition first, then do
the work, then report how long it took and where the output went.

Subclasses implement :meth:`GeoTool.validate_inputs` and
:meth:`GeoTool.process`; callers only ever call :meth:`GeoTool.run`::

    class SpeciesMap(GeoTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path, "Config file")

        def process(self) -> None:
            ...

    SpeciesMap(Path("config.json"), Path("results/"), verbose=True).run()
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path

# Parent of every toolkit logger; modules log through children such as
# "aohtoolkit.aoh_calculator.calculator".
logger = logging.getLogger("aohtoolkit")

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s — %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def configure_logging(verbose: bool = False) -> None:
    """Attach one console handler to the ``aohtoolkit`` logger.

    Repeated calls only adjust the level, so several tools in one
    process never duplicate log lines.
    """
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


class GeoTool(ABC):
    """Base class for a validate-then-process toolkit command.

    Args:
        input_path: The command's primary input.  For the AoH calculator
                    this is the experiment configuration file.
        output_path: Directory results are written into.
        verbose: Log at DEBUG instead of INFO.
    """

    def __init__(self, input_path: Path, output_path: Path, *, verbose: bool = False) -> None:
        self.input_path = Path(input_path)
        self.output_path = Path(output_path)
        self.verbose = verbose
        configure_logging(verbose)

    @abstractmethod
    def validate_inputs(self) -> None:
        """Raise an :class:`~shared.python.exceptions.AoHToolkitError` if the run cannot start."""

    @abstractmethod
    def process(self) -> None:
        """Do the work.  Only called once :meth:`validate_inputs` has passed."""

    def run(self) -> None:
        """Validate, process and report.

        Errors from either stage propagate unchanged; nothing is
        reported for a failed run.
        """
        name = self.__class__.__name__
        logger.info("Starting %s", name)
        started = time.perf_counter()

        self.validate_inputs()
        self.process()

        logger.info("%s finished in %.2fs, output in %s", name, time.perf_counter() - started, self.output_path)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(input_path={self.input_path!r}, output_path={self.output_path!r})"
