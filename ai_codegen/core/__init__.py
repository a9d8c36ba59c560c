"""
Core modules for AI Codegen.

This package contains the result cache, rate limiter, formatters,
generator kinds, and the error taxonomy.
"""
