"""
Validation package.

Import EntryValidator from savings_engine.validation.validator; the shared
row checks live in savings_engine.validation.rules.
"""
