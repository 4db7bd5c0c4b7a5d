"""Provider transports

Modules named ``*_providers.py`` are imported by
``scan_and_import_providers()``; their ``@register_provider`` decorators
fill the dispatch table.
"""

__all__ = []
