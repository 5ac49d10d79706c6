"""regforge: maintain a git-backed package registry.

Create registries, register packages and new package versions, and merge
registries, keeping the registry metadata consistent and committed.
"""

__version__ = "0.4.0"

from regforge.registry.create import create_registry  # noqa: E402
from regforge.registry.merge import merge  # noqa: E402
from regforge.registry.register import do_register, register  # noqa: E402

__all__ = ["__version__", "create_registry", "do_register", "merge", "register"]
