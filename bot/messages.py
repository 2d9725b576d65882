WELCOME_MESSAGE = (
    "Привет! Я помогу рассчитать расписание проекта по методу PERT.\n\n"
    "Опишите работы, их оценки длительности и предшественников, "
    "а я найду ранние и поздние сроки, резервы и критический путь."
)

HELP_MESSAGE = (
    "Как пользоваться ботом:\n\n"
    "1. Создайте проект.\n"
    "2. Добавьте работы строками вида:\n"
    "   Название; Предшественник1, Предшественник2; оптимистичная наиболее_вероятная пессимистичная\n"
    "   Например: Design; Research; 2 4 6\n"
    "   Если предшественников нет, оставьте поле пустым или поставьте '-'.\n"
    "3. Нажмите «Рассчитать PERT».\n\n"
    "Средняя длительность = (o + 4m + p) / 6, дисперсия = ((p - o) / 6)²."
)

CREATE_PROJECT_PROMPT = "Введите название нового проекта:"

ADD_ACTIVITY_PROMPT = (
    "Отправьте одну или несколько работ, каждую с новой строки:\n"
    "Название; Предшественники через запятую; o m p\n\n"
    "Например:\nA; -; 1 2 3\nB; A; 2 4 6"
)

UPLOAD_CSV_PROMPT = (
    "Отправьте CSV-файл или текст в формате CSV с колонками:\n"
    "activity,predecessors,optimisticTime,mostLikelyTime,pessimisticTime"
)

CSV_FORMAT_ERROR = (
    "Некорректный формат CSV. Обязательные колонки: "
    "activity, optimisticTime, mostLikelyTime, pessimisticTime"
)

ACCESS_DENIED_MESSAGE = "Доступ запрещен. Ваш Telegram ID: {user_id}"

EDIT_FIELD_PROMPTS = {
    'name': "Введите новое название работы (только буквы):",
    'estimates': "Введите оценки длительности: o m p (или одно число для всех трех):",
    'predecessors': "Введите предшественников через запятую (или '-', если их нет):",
}

FILTER_ACTIVITIES_PROMPT = "Введите часть названия работы для поиска:"

PROJECT_NOT_FOUND_MESSAGE = "Проект не найден."

ACTIVITY_NOT_FOUND_MESSAGE = "Работа не найдена в текущем проекте."
