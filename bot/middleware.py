from telegram import Update
from telegram.ext import CallbackContext, ApplicationHandlerStop
from logger import logger
from config import ALLOWED_USERS
from bot.messages import ACCESS_DENIED_MESSAGE


def is_user_allowed(telegram_id, allowed_users=None):
    """Пустой список разрешенных пользователей открывает доступ всем."""
    allowed_users = ALLOWED_USERS if allowed_users is None else allowed_users
    return not allowed_users or telegram_id in allowed_users


async def authorization_middleware(update: Update, context: CallbackContext):
    """
    Промежуточный обработчик для проверки авторизации пользователя.
    """
    # Пропускаем обновления без пользователя
    if not update.effective_user:
        return

    user_id = update.effective_user.id

    if not is_user_allowed(user_id):
        user_name = update.effective_user.username or update.effective_user.first_name
        logger.warning(f"Отказано в доступе: {user_id} ({user_name})")

        if update.effective_message:
            await update.effective_message.reply_text(
                ACCESS_DENIED_MESSAGE.format(user_id=user_id)
            )

        # Останавливаем обработку запроса
        raise ApplicationHandlerStop
