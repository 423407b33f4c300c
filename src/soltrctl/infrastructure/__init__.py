"""Infrastructure layer — subprocess execution, tool discovery, file I/O.

This layer depends on stdlib only; Host loads the plugin layer lazily.
It must never import from services, commands, or output.
The service layer bridges between domain rules and infrastructure.
"""
