"""
fluidics-core Factory
=====================
Builds ready-to-run backends and solver sessions from paths and flags, so
callers never wire strategy sets or solver lookup by hand.
"""

import os
from pathlib import Path
from typing import Optional, Sequence, Union

from .backend import BackendConfig, BackendResult, MicrofluidicsBackend
from .params import ProcessParameters
from .schematic import Schematic
from .solver import DRealSession, SolverConfig, SolverSession, Z3Session


def load_parameters(path: Union[str, Path]) -> ProcessParameters:
    """
    Load process parameters from a JSON file.

    Supports relative paths and user expansion (~/).

    Raises:
        FileNotFoundError: If the file does not exist.
        ParameterError: If a parameter is missing or not a number.
    """
    path_obj = Path(path).expanduser().resolve()
    if not path_obj.exists():
        raise FileNotFoundError(
            f"❌ Process parameter file not found at: '{path_obj}'\n"
            f"   (Current working directory: '{os.getcwd()}')"
        )
    return ProcessParameters.load(path_obj)


def create_backend(
    config: Optional[BackendConfig] = None,
    *,
    worst_case_analysis: bool = False,
    assume_infinite_area: bool = False,
    output_dir: Optional[Union[str, Path]] = None,
    verbose: bool = False,
) -> MicrofluidicsBackend:
    """
    A backend from an explicit config, or from keyword flags when none is given.
    An output directory turns on writing the .smt2 problem file.
    """
    if config is None:
        config = BackendConfig(
            worst_case_analysis=worst_case_analysis,
            assume_infinite_area=assume_infinite_area,
            write_smt2=output_dir is not None,
            output_dir=str(Path(output_dir).expanduser().resolve()) if output_dir is not None else None,
            verbose=verbose,
        )
    return MicrofluidicsBackend(config)


def create_session(
    engine: str = "dreal",
    *,
    search_dirs: Sequence[Union[str, Path]] = (),
    debug: bool = False,
) -> SolverSession:
    """A fresh, unopened session for ``engine`` ("dreal" or "z3")."""
    engine = engine.lower()
    if engine == "dreal":
        config = SolverConfig(search_dirs=tuple(str(Path(d).expanduser()) for d in search_dirs))
        return DRealSession(config, debug=debug)
    if engine == "z3":
        return Z3Session(debug=debug)
    raise ValueError(f"unknown solver engine '{engine}' (expected 'dreal' or 'z3')")


def solve_schematic(
    schematic: Schematic,
    params: Union[ProcessParameters, str, Path],
    *,
    engine: str = "dreal",
    config: Optional[BackendConfig] = None,
    verbose: bool = False,
) -> BackendResult:
    """One-shot: compile, solve and back-annotate. ``verbose`` only applies
    when no explicit config is given."""
    if not isinstance(params, ProcessParameters):
        params = load_parameters(params)
    backend = create_backend(config, verbose=verbose)
    return backend.run(schematic, params, create_session(engine))
