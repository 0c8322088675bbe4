"""Ember compilers.

``Compiler`` turns scripted markup into cached ``CompiledUnit`` objects;
``evaluate_builder`` runs structured-builder source on every render.
"""

from ember.compiler.builder import compile_builder, evaluate_builder
from ember.compiler.core import Compiler, compile_template, executable_name

__all__ = [
    "Compiler",
    "compile_builder",
    "compile_template",
    "evaluate_builder",
    "executable_name",
]
