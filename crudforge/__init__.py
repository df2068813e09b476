"""
Crudforge - Schema-driven CRUD layer generator

Turns a field list or a live database table into model, repository, service,
handler, migration and Ant Design Pro frontend files for one entity.
"""

__version__ = "0.1.0"

from crudforge.spec import EntityField, ModuleRequest, FrontendRequest
from crudforge.generator import generate_module, ModuleGenerator
from crudforge.writer import GenerationResult

__all__ = [
    "EntityField",
    "ModuleRequest",
    "FrontendRequest",
    "generate_module",
    "ModuleGenerator",
    "GenerationResult",
]
