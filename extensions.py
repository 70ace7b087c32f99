"""
Модуль: `extensions.py`.
Назначение: Инициализация и экспорт экземпляров Flask-расширений.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_babel import Babel

# Все расширения создаём здесь и инициализируем в фабрике приложения
db = SQLAlchemy()
cors = CORS()
babel = Babel()
