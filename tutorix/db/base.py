"""SQLAlchemy Base class for all models."""
from tutorix.models.base.base_model import Base


def import_models():
    """Import all models to register them with SQLAlchemy."""
    import tutorix.models  # noqa: F401


__all__ = ["Base", "import_models"]
