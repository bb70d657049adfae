"""
Entity Mixin - shared entity services with obfuscated ids, soft deletion and
permission-gated CRUD.
"""
__version__ = "0.1.0"
