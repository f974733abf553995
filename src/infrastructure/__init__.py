"""
infrastructure - Concrete implementations of domain ports.

Contains all vendor-specific code: LangChain chat/embedding providers,
aiosqlite repositories, settings and logging setup.
Depends on domain/ only (implements ports). Never imported by application/.
"""
