from .text_output import TextOutputController

__all__ = ["TextOutputController"]
