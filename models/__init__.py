"""
Модуль: `models/__init__.py`.
Назначение: Импорт моделей для корректной регистрации в SQLAlchemy metadata.
"""

from .artwork import Artwork
from .pom import Pom
from .texture import Texture
from .upload import Upload

__all__ = ["Artwork", "Pom", "Texture", "Upload"]
