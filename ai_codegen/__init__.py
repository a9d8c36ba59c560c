"""
AI Codegen - generate code from natural-language prompts.
"""

__version__ = "0.1.0"
