import io

from telegram import Update, InputFile
from telegram.ext import ContextTypes, ConversationHandler

from logger import logger
from bot.states import BotStates
from bot.keyboards import (
    main_menu_keyboard, project_menu_keyboard, projects_keyboard,
    activities_keyboard, back_to_project_keyboard, edit_activity_keyboard
)
from bot.messages import (
    WELCOME_MESSAGE, HELP_MESSAGE, CREATE_PROJECT_PROMPT, ADD_ACTIVITY_PROMPT,
    UPLOAD_CSV_PROMPT, CSV_FORMAT_ERROR, EDIT_FIELD_PROMPTS, FILTER_ACTIVITIES_PROMPT,
    PROJECT_NOT_FOUND_MESSAGE, ACTIVITY_NOT_FOUND_MESSAGE
)
from bot.telegram_helpers import (
    safe_edit_message_text, parse_activity_line, parse_estimates, parse_predecessors,
    format_activities_table, format_schedule_report
)
from database.operations import (
    create_new_project, get_user_projects, get_project, add_activity, delete_activity,
    get_project_activities, get_project_activity, update_activity_name, set_activity_estimates,
    set_activity_predecessors, filter_activities
)
from planning.exceptions import ScheduleError
from planning.network import calculate_network_parameters
from planning.visualization import generate_network_diagram, generate_gantt_chart
from utils.csv_io import import_activities_from_csv, export_schedule_to_csv, export_activities_to_csv


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Начальный обработчик, отправляет приветственное сообщение и меню."""
    message = update.message or update.callback_query.message

    if update.callback_query:
        await update.callback_query.answer()

    await message.reply_text(
        WELCOME_MESSAGE,
        reply_markup=main_menu_keyboard()
    )
    return BotStates.MAIN_MENU


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Отправляет справочное сообщение."""
    query = update.callback_query
    if query:
        await query.answer()
        await safe_edit_message_text(query, HELP_MESSAGE, reply_markup=main_menu_keyboard())
    else:
        await update.message.reply_text(HELP_MESSAGE, reply_markup=main_menu_keyboard())
    return BotStates.MAIN_MENU


async def back_to_main(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Возврат в главное меню."""
    query = update.callback_query
    await query.answer()
    context.user_data.pop('project_id', None)
    await safe_edit_message_text(query, WELCOME_MESSAGE, reply_markup=main_menu_keyboard())
    return BotStates.MAIN_MENU


async def request_project_name(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Запрашивает название нового проекта."""
    query = update.callback_query
    await query.answer()
    await safe_edit_message_text(query, CREATE_PROJECT_PROMPT)
    return BotStates.CREATE_PROJECT


async def create_project(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Создает проект с введенным названием."""
    project_name = update.message.text.strip()
    if not project_name:
        await update.message.reply_text(CREATE_PROJECT_PROMPT)
        return BotStates.CREATE_PROJECT

    project_id = create_new_project(project_name, owner_id=update.effective_user.id)
    context.user_data['project_id'] = project_id

    await update.message.reply_text(
        f"Проект '{project_name}' создан.\n\n{ADD_ACTIVITY_PROMPT}",
        reply_markup=back_to_project_keyboard()
    )
    return BotStates.ADD_ACTIVITY


async def list_projects(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Показывает проекты пользователя."""
    query = update.callback_query
    await query.answer()

    projects = get_user_projects(update.effective_user.id)
    text = "Ваши проекты:" if projects else "У вас пока нет проектов."
    await safe_edit_message_text(query, text, reply_markup=projects_keyboard(projects))
    return BotStates.SELECT_PROJECT


async def show_project(message, project_id, query=None):
    """Отправляет (или обновляет) карточку проекта со списком работ."""
    project = get_project(project_id)
    text = f"Проект: {project['name']}\n\n{format_activities_table(get_project_activities(project_id))}"

    if query:
        await safe_edit_message_text(query, text, reply_markup=project_menu_keyboard())
    else:
        await message.reply_text(text, reply_markup=project_menu_keyboard())
    return BotStates.PROJECT_MENU


async def select_project(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик выбора проекта из списка."""
    query = update.callback_query
    await query.answer()

    project_id = int(query.data.split('_')[1])
    # Чужие проекты не открываем
    if not get_project(project_id, owner_id=update.effective_user.id):
        await safe_edit_message_text(query, PROJECT_NOT_FOUND_MESSAGE, reply_markup=main_menu_keyboard())
        return BotStates.MAIN_MENU

    context.user_data['project_id'] = project_id
    return await show_project(query.message, project_id, query=query)


async def back_to_project(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    return await show_project(query.message, context.user_data['project_id'], query=query)


async def request_activities(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Запрашивает работы для добавления."""
    query = update.callback_query
    await query.answer()
    await safe_edit_message_text(query, ADD_ACTIVITY_PROMPT, reply_markup=back_to_project_keyboard())
    return BotStates.ADD_ACTIVITY


async def add_activities(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Добавляет работы из текстового сообщения (по одной на строку)."""
    project_id = context.user_data['project_id']
    lines = [line for line in update.message.text.splitlines() if line.strip()]

    added = []
    errors = []
    for line in lines:
        try:
            activity = parse_activity_line(line)
            add_activity(project_id, **activity)
            added.append(activity['name'])
        except (ValueError, ScheduleError) as e:
            errors.append(str(e))

    report = f"Добавлено работ: {len(added)}"
    if errors:
        report += "\n\nОшибки:\n" + "\n".join(f"- {error}" for error in errors)

    await update.message.reply_text(report)
    return await show_project(update.message, project_id)


async def request_delete_activity(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Показывает список работ для удаления."""
    query = update.callback_query
    await query.answer()

    activities = get_project_activities(context.user_data['project_id'])
    await safe_edit_message_text(query, "Выберите работу для удаления:", reply_markup=activities_keyboard(activities))
    return BotStates.DELETE_ACTIVITY


async def delete_activity_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()

    project_id = context.user_data['project_id']
    activity_id = int(query.data.split('_')[1])
    if get_project_activity(project_id, activity_id) is None:
        logger.warning(f"Работа {activity_id} не найдена в проекте {project_id}")
        await query.message.reply_text(ACTIVITY_NOT_FOUND_MESSAGE)
    elif not delete_activity(activity_id):
        logger.warning(f"Работа {activity_id} уже удалена")

    return await show_project(query.message, project_id, query=query)


async def request_edit_activity(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Показывает список работ для изменения."""
    query = update.callback_query
    await query.answer()

    activities = get_project_activities(context.user_data['project_id'])
    if not activities:
        await safe_edit_message_text(query, format_activities_table(activities), reply_markup=project_menu_keyboard())
        return BotStates.PROJECT_MENU

    await safe_edit_message_text(
        query,
        "Выберите работу для изменения:",
        reply_markup=activities_keyboard(activities, action="edit")
    )
    return BotStates.SELECT_EDIT_ACTIVITY


async def select_edit_activity(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Запоминает выбранную работу и предлагает выбрать поле."""
    query = update.callback_query
    await query.answer()

    activity_id = int(query.data.split('_')[1])
    activity = get_project_activity(context.user_data['project_id'], activity_id)
    if activity is None:
        await safe_edit_message_text(query, ACTIVITY_NOT_FOUND_MESSAGE, reply_markup=project_menu_keyboard())
        return BotStates.PROJECT_MENU

    context.user_data['activity_id'] = activity_id
    await safe_edit_message_text(
        query,
        f"{format_activities_table([activity])}\n\nЧто изменить?",
        reply_markup=edit_activity_keyboard()
    )
    return BotStates.EDIT_ACTIVITY


async def request_edit_value(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()

    field = query.data.split('_', 1)[1]
    context.user_data['edit_field'] = field
    await safe_edit_message_text(query, EDIT_FIELD_PROMPTS[field], reply_markup=back_to_project_keyboard())
    return BotStates.EDIT_ACTIVITY_VALUE


async def edit_activity_value(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Применяет новое значение выбранного поля работы."""
    project_id = context.user_data['project_id']
    activity_id = context.user_data.get('activity_id')
    field = context.user_data.get('edit_field')

    if field not in EDIT_FIELD_PROMPTS or get_project_activity(project_id, activity_id) is None:
        await update.message.reply_text(ACTIVITY_NOT_FOUND_MESSAGE)
        return await show_project(update.message, project_id)

    text = update.message.text
    try:
        if field == 'name':
            update_activity_name(activity_id, text)
        elif field == 'estimates':
            set_activity_estimates(activity_id, *parse_estimates(text))
        else:
            set_activity_predecessors(activity_id, parse_predecessors(text))
    except (ValueError, ScheduleError) as e:
        await update.message.reply_text(
            f"Ошибка: {str(e)}\n\n{EDIT_FIELD_PROMPTS[field]}",
            reply_markup=back_to_project_keyboard()
        )
        return BotStates.EDIT_ACTIVITY_VALUE

    context.user_data.pop('activity_id', None)
    context.user_data.pop('edit_field', None)
    await update.message.reply_text("Работа обновлена.")
    return await show_project(update.message, project_id)


async def request_filter_activities(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Запрашивает строку поиска по названиям работ."""
    query = update.callback_query
    await query.answer()
    await safe_edit_message_text(query, FILTER_ACTIVITIES_PROMPT, reply_markup=back_to_project_keyboard())
    return BotStates.FILTER_ACTIVITIES


async def filter_activities_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    project_id = context.user_data['project_id']
    matches = filter_activities(get_project_activities(project_id), update.message.text.strip())

    text = format_activities_table(matches) if matches else "Работы не найдены."
    await update.message.reply_text(text, reply_markup=project_menu_keyboard())
    return BotStates.PROJECT_MENU


async def upload_csv(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Запрашивает CSV-файл."""
    query = update.callback_query
    await query.answer()
    await safe_edit_message_text(query, UPLOAD_CSV_PROMPT, reply_markup=back_to_project_keyboard())
    return BotStates.UPLOAD_CSV


async def process_csv(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик обработки CSV-файла."""
    message = update.message

    if message.document:
        file = await message.document.get_file()
        file_bytes = io.BytesIO()
        await file.download_to_memory(file_bytes)
        csv_content = file_bytes.getvalue().decode('utf-8-sig')
    elif message.text:
        csv_content = message.text
    else:
        await message.reply_text("Пожалуйста, отправьте CSV-файл или текст в формате CSV.")
        return BotStates.UPLOAD_CSV

    try:
        activity_ids = import_activities_from_csv(context.user_data['project_id'], csv_content)
    except (ValueError, ScheduleError) as e:
        await message.reply_text(f"Ошибка при обработке CSV: {str(e)}\n\n{CSV_FORMAT_ERROR}")
        return BotStates.UPLOAD_CSV

    await message.reply_text(f"Импортировано работ: {len(activity_ids)}")
    return await show_project(message, context.user_data['project_id'])


async def calculate_plan(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик расчета расписания PERT."""
    query = update.callback_query
    await query.answer()

    project_id = context.user_data['project_id']
    activities = get_project_activities(project_id)

    try:
        schedule = calculate_network_parameters(activities)
    except ScheduleError as e:
        await safe_edit_message_text(
            query,
            f"Не удалось рассчитать расписание: {str(e)}\n\nПроверьте зависимости и оценки работ.",
            reply_markup=project_menu_keyboard()
        )
        return BotStates.PROJECT_MENU

    for image, caption in (
        (generate_network_diagram(schedule.graph), "Сетевой график PERT"),
        (generate_gantt_chart(schedule), "Диаграмма Ганта с резервами времени"),
    ):
        buffer = io.BytesIO()
        image.save(buffer, format='PNG')
        buffer.seek(0)
        await query.message.reply_photo(photo=buffer, caption=caption)

    await query.message.reply_text(format_schedule_report(schedule), reply_markup=project_menu_keyboard())
    return BotStates.PROJECT_MENU


async def export_csv(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Отправляет таблицу PERT (и расписание, если оно рассчитано) в CSV."""
    query = update.callback_query
    await query.answer()

    project_id = context.user_data['project_id']
    activities = get_project_activities(project_id)
    try:
        content = export_schedule_to_csv(calculate_network_parameters(activities))
    except ScheduleError as e:
        logger.warning(f"Экспорт без расписания: {str(e)}")
        content = export_activities_to_csv(activities)

    await query.message.reply_document(
        document=InputFile(io.BytesIO(content.encode('utf-8')), filename="pert-table.csv"),
        caption="Таблица PERT",
        reply_markup=project_menu_keyboard()
    )
    return BotStates.PROJECT_MENU


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Сбрасывает диалог."""
    context.user_data.clear()
    message = update.message or update.callback_query.message
    await message.reply_text("Действие отменено.", reply_markup=main_menu_keyboard())
    return ConversationHandler.END
