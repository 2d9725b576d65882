from enum import Enum, auto

class BotStates(Enum):
    """Состояния для диалогового интерфейса бота."""
    MAIN_MENU = auto()
    CREATE_PROJECT = auto()
    SELECT_PROJECT = auto()
    PROJECT_MENU = auto()
    ADD_ACTIVITY = auto()
    DELETE_ACTIVITY = auto()
    UPLOAD_CSV = auto()
    SELECT_EDIT_ACTIVITY = auto()
    EDIT_ACTIVITY = auto()
    EDIT_ACTIVITY_VALUE = auto()
    FILTER_ACTIVITIES = auto()
