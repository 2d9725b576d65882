from telegram import InlineKeyboardButton, InlineKeyboardMarkup

def main_menu_keyboard():
    """Клавиатура главного меню."""
    keyboard = [
        [InlineKeyboardButton("Создать проект", callback_data="create_project")],
        [InlineKeyboardButton("Мои проекты", callback_data="list_projects")],
        [InlineKeyboardButton("Справка", callback_data="help")]
    ]
    return InlineKeyboardMarkup(keyboard)

def project_menu_keyboard():
    """Клавиатура действий с проектом."""
    keyboard = [
        [InlineKeyboardButton("Добавить работы", callback_data="add_activities")],
        [InlineKeyboardButton("Изменить работу", callback_data="edit_activity")],
        [InlineKeyboardButton("Удалить работу", callback_data="delete_activity")],
        [InlineKeyboardButton("Найти работу", callback_data="filter_activities")],
        [InlineKeyboardButton("Загрузить CSV", callback_data="upload_csv")],
        [InlineKeyboardButton("Рассчитать PERT", callback_data="calculate")],
        [InlineKeyboardButton("Экспорт в CSV", callback_data="export_csv")],
        [InlineKeyboardButton("Мои проекты", callback_data="list_projects")],
        [InlineKeyboardButton("Вернуться в главное меню", callback_data="main_menu")]
    ]
    return InlineKeyboardMarkup(keyboard)

def projects_keyboard(projects):
    """
    Клавиатура списка проектов.

    Args:
        projects: Список проектов
    """
    keyboard = []

    for project in projects:
        keyboard.append([InlineKeyboardButton(
            f"{project['name']} ({project['activities_count']} работ)",
            callback_data=f"project_{project['id']}"
        )])

    keyboard.append([InlineKeyboardButton("Создать новый проект", callback_data="create_project")])
    keyboard.append([InlineKeyboardButton("Назад", callback_data="back_to_main")])

    return InlineKeyboardMarkup(keyboard)

def activities_keyboard(activities, action="delete"):
    """
    Клавиатура выбора работы.

    Args:
        activities: Список работ проекта
        action: Префикс callback_data (delete или edit)
    """
    keyboard = []
    for activity in activities:
        keyboard.append([InlineKeyboardButton(
            activity.name or f"#{activity.id} (без названия)",
            callback_data=f"{action}_{activity.id}"
        )])

    keyboard.append([InlineKeyboardButton("Назад", callback_data="back_to_project")])
    return InlineKeyboardMarkup(keyboard)

def back_to_project_keyboard():
    """Клавиатура с кнопкой возврата к проекту."""
    return InlineKeyboardMarkup([[InlineKeyboardButton("Назад к проекту", callback_data="back_to_project")]])

def edit_activity_keyboard():
    """Клавиатура выбора изменяемого поля работы."""
    keyboard = [
        [InlineKeyboardButton("Название", callback_data="field_name")],
        [InlineKeyboardButton("Оценки длительности", callback_data="field_estimates")],
        [InlineKeyboardButton("Предшественники", callback_data="field_predecessors")],
        [InlineKeyboardButton("Назад к проекту", callback_data="back_to_project")]
    ]
    return InlineKeyboardMarkup(keyboard)
