"""ProfileKit: inheritable agent profile compiler."""

__version__ = "0.1.0"
__author__ = "ProfileKit Contributors"
__description__ = "Compile inheritable agent profiles into installable prompts"

from .compiler import OutputStager, ProfileCompiler, compile_profile
from .merger import merge
from .models import CompilationResult, CompileConfig, CompiledDocument, Profile
from .registry import ProfileRepository
from .resolver import resolve

__all__ = [
    "CompilationResult",
    "CompileConfig",
    "CompiledDocument",
    "OutputStager",
    "Profile",
    "ProfileCompiler",
    "ProfileRepository",
    "compile_profile",
    "merge",
    "resolve",
]
