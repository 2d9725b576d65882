import os
from dotenv import load_dotenv

# Загрузка переменных окружения из .env файла
load_dotenv()

# Токен Telegram бота
BOT_TOKEN = os.getenv("BOT_TOKEN")

# Telegram id пользователей с доступом к боту, пустой список - доступ для всех
ALLOWED_USERS = [
    int(user_id) for user_id in os.getenv("ALLOWED_USERS", "").split(",") if user_id.strip()
]

# Настройки базы данных
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///pert_planner.db")

# Допуск резерва, при котором работа считается критической
CRITICAL_TOLERANCE = float(os.getenv("PERT_CRITICAL_TOLERANCE", "0.001"))

# Настройки логирования
LOG_FILE = os.getenv("LOG_FILE", "pert_planner.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
