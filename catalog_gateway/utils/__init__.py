"""
Utility Package

Primitive validators, input sanitization and the request pipeline
decorators shared by every route.
"""
