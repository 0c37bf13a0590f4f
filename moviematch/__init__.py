"""
MovieMatch - Two-person movie picking service

One participant generates a short session code, the other joins with it.
Both submit genre/year preferences, rate a shared list of candidate movies,
and the service proposes the movie with the highest combined rating.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- session: Session lifecycle, join order, preferences and ratings
- storage: Session persistence backends (memory, redis)
- catalog: External movie catalog provider (TMDb)
- recommendation: Genre union, year cutoff and combined-score selection
- api: REST API request/response models
- config: Environment-driven configuration
"""

__version__ = "1.0.0"
