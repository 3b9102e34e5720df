"""
Vision Buddy Services Package

Remote services the navigation assistant talks to, organized by function.

Vision (services.vision)
------------------------
- GeminiVisionClient: Scene description, hazards and sign-hunting guidance

Spatial Registry (services.registry)
------------------------------------
- SnowflakeRegistryClient: Known locations over the Snowflake SQL API
- InMemoryRegistry: Offline registry for dry runs and tests
"""

__version__ = "0.1.0"
