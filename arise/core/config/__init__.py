"""
Configuration subsystem for the Arise economy engine.

Static configuration only: values are loaded from environment variables
(with ``.env`` support) when the module is imported.

Usage
-----
```python
from arise.core.config import Config

db_url = Config.DATABASE_URL
if Config.is_production():
    logger.info("Running in production mode")
```
"""

from arise.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
