"""
tmlang: a compiler and engine for binary Turing Machine descriptions.

    source → parse → build → compose → step

| Layer                      | Purpose                                         |
<--------------------------- + ----------------------------------------------->
| **Parser**                 | Order-independent headers, positioned errors    |
| **Builder**                | Typed definition, warnings, reachability        |
| **Registry**               | Built-in library machines, validated on load    |
| **Composer**               | Namespaced splicing of library tables           |
| **Engine**                 | Exact halting, non-deterministic candidates     |
| **Exploration**            | Breadth-first search over forked branches       |
| **Machine documents**      | Portable `.tm.json` form, hash & diff           |
"""

from . import core as _core
from . import errors as _errors
from . import parser as _parser
from . import analysis as _analysis
from . import builder as _builder
from . import registry as _registry
from . import composer as _composer
from . import engine as _engine
from . import explore as _explore
from . import bitcode as _bitcode
from .cli import format_diagnostic, main, parse_args

from .core import *
from .errors import *
from .parser import *
from .analysis import *
from .builder import *
from .registry import *
from .composer import *
from .engine import *
from .explore import *
from .bitcode import *

__all__ = []
for module in (
    _core,
    _errors,
    _parser,
    _analysis,
    _builder,
    _registry,
    _composer,
    _engine,
    _explore,
    _bitcode,
):
    __all__.extend(getattr(module, "__all__", []))
__all__ += ["format_diagnostic", "main", "parse_args"]
__all__ = list(dict.fromkeys(__all__))
