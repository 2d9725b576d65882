# main.py
from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    TypeHandler,
    filters
)

from bot.handlers import (
    start, help_command, back_to_main, request_project_name, create_project,
    list_projects, select_project, back_to_project, request_activities, add_activities,
    request_delete_activity, delete_activity_handler, request_edit_activity, select_edit_activity,
    request_edit_value, edit_activity_value, request_filter_activities, filter_activities_handler,
    upload_csv, process_csv, calculate_plan, export_csv, cancel
)
from bot.keyboards import main_menu_keyboard
from bot.middleware import authorization_middleware
from bot.states import BotStates
from config import BOT_TOKEN
from database.operations import init_db
from logger import logger


def build_conversation_handler():
    """Собирает обработчик диалога PERT-бота."""
    return ConversationHandler(
        entry_points=[CommandHandler('start', start)],
        states={
            BotStates.MAIN_MENU: [
                CallbackQueryHandler(request_project_name, pattern='^create_project$'),
                CallbackQueryHandler(list_projects, pattern='^list_projects$'),
                CallbackQueryHandler(help_command, pattern='^help$'),
            ],
            BotStates.CREATE_PROJECT: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, create_project),
            ],
            BotStates.SELECT_PROJECT: [
                CallbackQueryHandler(select_project, pattern=r'^project_\d+$'),
                CallbackQueryHandler(request_project_name, pattern='^create_project$'),
                CallbackQueryHandler(back_to_main, pattern='^back_to_main$'),
            ],
            BotStates.PROJECT_MENU: [
                CallbackQueryHandler(request_activities, pattern='^add_activities$'),
                CallbackQueryHandler(request_delete_activity, pattern='^delete_activity$'),
                CallbackQueryHandler(request_edit_activity, pattern='^edit_activity$'),
                CallbackQueryHandler(request_filter_activities, pattern='^filter_activities$'),
                CallbackQueryHandler(upload_csv, pattern='^upload_csv$'),
                CallbackQueryHandler(calculate_plan, pattern='^calculate$'),
                CallbackQueryHandler(export_csv, pattern='^export_csv$'),
                CallbackQueryHandler(list_projects, pattern='^list_projects$'),
                CallbackQueryHandler(back_to_main, pattern='^main_menu$'),
            ],
            BotStates.ADD_ACTIVITY: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, add_activities),
                CallbackQueryHandler(back_to_project, pattern='^back_to_project$'),
            ],
            BotStates.DELETE_ACTIVITY: [
                CallbackQueryHandler(delete_activity_handler, pattern=r'^delete_\d+$'),
                CallbackQueryHandler(back_to_project, pattern='^back_to_project$'),
            ],
            BotStates.SELECT_EDIT_ACTIVITY: [
                CallbackQueryHandler(select_edit_activity, pattern=r'^edit_\d+$'),
                CallbackQueryHandler(back_to_project, pattern='^back_to_project$'),
            ],
            BotStates.EDIT_ACTIVITY: [
                CallbackQueryHandler(request_edit_value, pattern='^field_(name|estimates|predecessors)$'),
                CallbackQueryHandler(back_to_project, pattern='^back_to_project$'),
            ],
            BotStates.EDIT_ACTIVITY_VALUE: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, edit_activity_value),
                CallbackQueryHandler(back_to_project, pattern='^back_to_project$'),
            ],
            BotStates.FILTER_ACTIVITIES: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, filter_activities_handler),
                CallbackQueryHandler(back_to_project, pattern='^back_to_project$'),
            ],
            BotStates.UPLOAD_CSV: [
                MessageHandler(filters.Document.ALL, process_csv),
                MessageHandler(filters.TEXT & ~filters.COMMAND, process_csv),
                CallbackQueryHandler(back_to_project, pattern='^back_to_project$'),
            ],
        },
        fallbacks=[CommandHandler('cancel', cancel), CommandHandler('help', help_command)],
        name="pert_conversation",
        persistent=False,
        allow_reentry=True
    )


def main():
    """Запуск бота."""
    logger.info("Запуск бота...")

    logger.info("Инициализация базы данных...")
    init_db()

    application = Application.builder().token(BOT_TOKEN).build()

    # Проверка доступа для всех обновлений, до остальных обработчиков
    application.add_handler(TypeHandler(Update, authorization_middleware), group=-1)

    async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Обработчик ошибок."""
        logger.error(f"Произошла ошибка: {context.error}")
        try:
            if isinstance(update, Update) and update.effective_message:
                await update.effective_message.reply_text(
                    "Произошла ошибка. Попробуйте использовать команду /cancel для сброса состояния.",
                    reply_markup=main_menu_keyboard()
                )
        except Exception as e:
            logger.error(f"Ошибка при отправке сообщения об ошибке: {str(e)}")

    application.add_error_handler(error_handler)
    application.add_handler(build_conversation_handler())

    logger.info("Бот запущен и готов к работе!")
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == '__main__':
    main()
