"""Pipeline stages: generator adapter, comment sanitizer, module layout and output."""

from protonest.codegen.codegen import Codegen

__all__ = ['Codegen']
