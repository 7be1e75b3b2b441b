"""
refmodel - schema-validated models with reactive handles for UI layers

Turns plain data (decoded JSON from a backend) into validated model
instances with nested sub-models, and wraps them in observable handles
a view layer can watch.

Example:
    from refmodel import Model

    class Address(Model):
        __schema__ = {"city": "string"}

    class User(Model):
        __schema__ = {
            "name": "string",
            "age": "number",
            "email": ["is_email"],
            "address": Address,
        }

    user = User.create({"name": "Ann", "age": 30, "email": "ann@example.com",
                        "address": {"city": "Porto"}})
    user.watch(lambda new, old: render(new))
"""

__version__ = "0.1.0"

# --- Errors ---
from .errors import (
    ModelError,
    InvalidArgumentError,
    UnknownAttributeError,
    UnknownSubModelError,
    TypeMismatchError,
    UnknownValidatorError,
    ValidationError,
    NotImplementedMethodError,
)

# --- Directives ---
from .directives import (
    Directive, AnyDirective, PrimitiveDirective, DateDirective,
    SubModelDirective, NamedRuleDirective,
    nullable, resolve_directive,
)

# --- Rules ---
from .rules import register_rule, get_rule, rule_names

# --- Validation ---
from .validation import validate

# --- Reactive handles ---
from .reactive import Ref, CollectionRef, ref

# --- Config ---
from .config import ConfigDict

# --- Model ---
from .model import Model, FetchResult, UNSET


__all__ = [
    # Errors
    "ModelError", "InvalidArgumentError", "UnknownAttributeError",
    "UnknownSubModelError", "TypeMismatchError", "UnknownValidatorError",
    "ValidationError", "NotImplementedMethodError",

    # Directives
    "Directive", "AnyDirective", "PrimitiveDirective", "DateDirective",
    "SubModelDirective", "NamedRuleDirective",
    "nullable", "resolve_directive",

    # Rules
    "register_rule", "get_rule", "rule_names",

    # Validation
    "validate",

    # Reactive handles
    "Ref", "CollectionRef", "ref",

    # Config
    "ConfigDict",

    # Model
    "Model", "FetchResult", "UNSET",
]
