from .architect import Architect, ArchitectResponse, decode_architect_response
from .assembler import Assembler, AssemblerRequest, decode_blueprint
from .base import GenerativeAgent, render_learned_context
from .persona import Persona, PersonaRequest
from .writer import TextResponse, Writer, WriterRequest, decode_text_response

__all__ = [
    "Architect",
    "ArchitectResponse",
    "Assembler",
    "AssemblerRequest",
    "GenerativeAgent",
    "Persona",
    "PersonaRequest",
    "TextResponse",
    "Writer",
    "WriterRequest",
    "decode_architect_response",
    "decode_blueprint",
    "decode_text_response",
    "render_learned_context",
]
