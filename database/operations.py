from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from database.models import Base, Project, Activity, ActivityPredecessor
from config import DATABASE_URL
from logger import logger
from planning import models as planning_models
from planning.estimates import derive_estimates, validate_estimates
from planning.exceptions import InvalidActivityNameError

# Создаем соединение с БД
engine = create_engine(DATABASE_URL)
Session = sessionmaker(bind=engine)


def configure_engine(database_url):
    """
    Переключает хранилище на другую БД (используется в тестах и при запуске).

    Args:
        database_url: URL базы данных SQLAlchemy
    """
    global engine
    engine = create_engine(database_url)
    Session.configure(bind=engine)
    logger.debug(f"Хранилище переключено на {database_url}")
    return engine


def init_db():
    """Инициализирует базу данных."""
    logger.info(f"Инициализация базы данных с URL: {engine.url}")
    try:
        Base.metadata.create_all(engine)
        logger.info("База данных успешно инициализирована")

    except Exception as e:
        logger.error(f"Ошибка при инициализации базы данных: {str(e)}")
        raise


@contextmanager
def session_scope():
    """
    Контекстный менеджер для работы с сессиями SQLAlchemy.
    Автоматически выполняет commit при успешном завершении
    и rollback при возникновении исключения.
    """
    session = Session()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Ошибка при работе с БД: {str(e)}")
        raise
    finally:
        session.close()


def validate_activity_name(name):
    """Название может быть пустым или состоять только из букв."""
    name = (name or "").strip()
    if name and not name.isalpha():
        raise InvalidActivityNameError(name)
    return name


def create_new_project(name, owner_id=None):
    """
    Создает новый проект в БД.

    Args:
        name: Название проекта
        owner_id: Telegram id владельца

    Returns:
        ID созданного проекта
    """
    with session_scope() as session:
        project = Project(name=name, owner_id=owner_id)
        session.add(project)
        session.flush()
        logger.info(f"Создан проект: {name} (ID: {project.id})")
        return project.id


def get_user_projects(owner_id=None):
    """
    Получает список проектов пользователя.

    Returns:
        Список словарей {'id', 'name', 'activities_count'}
    """
    with session_scope() as session:
        query = session.query(Project)
        if owner_id is not None:
            query = query.filter(Project.owner_id == owner_id)

        return [{
            'id': project.id,
            'name': project.name,
            'activities_count': len(project.activities)
        } for project in query.order_by(Project.id).all()]


def get_project(project_id, owner_id=None):
    """
    Возвращает проект по ID.

    Args:
        project_id: ID проекта
        owner_id: Если указан, проект другого владельца не возвращается

    Returns:
        Словарь {'id', 'name', 'owner_id'} или None
    """
    with session_scope() as session:
        project = session.get(Project, project_id)
        if not project:
            return None
        if owner_id is not None and project.owner_id != owner_id:
            logger.warning(f"Проект {project_id} не принадлежит пользователю {owner_id}")
            return None
        return {'id': project.id, 'name': project.name, 'owner_id': project.owner_id}


def add_activity(project_id, name="", optimistic=0, most_likely=0, pessimistic=0, predecessors=()):
    """
    Добавляет работу в проект.

    По умолчанию работа создается без названия, с нулевыми оценками и без
    предшественников.

    Args:
        project_id: ID проекта
        name: Название работы
        optimistic, most_likely, pessimistic: Оценки длительности
        predecessors: Названия предшествующих работ

    Returns:
        ID созданной работы
    """
    name = validate_activity_name(name)
    validate_estimates(optimistic, most_likely, pessimistic, name=name)
    mean, variance = derive_estimates(optimistic, most_likely, pessimistic)

    with session_scope() as session:
        if not session.get(Project, project_id):
            raise ValueError(f"Проект с ID {project_id} не найден")

        activity = Activity(
            project_id=project_id,
            name=name,
            optimistic=optimistic,
            most_likely=most_likely,
            pessimistic=pessimistic,
            mean=mean,
            variance=variance
        )
        for predecessor_name in planning_models.normalize_predecessors(predecessors):
            if predecessor_name != name:
                activity.predecessors.append(ActivityPredecessor(predecessor_name=predecessor_name))

        session.add(activity)
        session.flush()
        logger.info(f"Добавлена работа {name or '(без названия)'} (ID: {activity.id}) в проект {project_id}")
        return activity.id


def _get_activity(session, activity_id):
    activity = session.get(Activity, activity_id)
    if not activity:
        raise ValueError(f"Работа с ID {activity_id} не найдена")
    return activity


def update_activity_name(activity_id, name):
    """
    Переименовывает работу.

    Ссылки других работ на старое название не изменяются и могут стать висячими.
    Ссылка работы на собственное новое название удаляется.
    """
    name = validate_activity_name(name)
    with session_scope() as session:
        activity = _get_activity(session, activity_id)
        activity.name = name
        for link in list(activity.predecessors):
            if link.predecessor_name == name:
                activity.predecessors.remove(link)


def set_activity_estimates(activity_id, optimistic=None, most_likely=None, pessimistic=None):
    """
    Обновляет оценки длительности и пересчитывает mean/variance.

    Args:
        activity_id: ID работы
        optimistic, most_likely, pessimistic: Новые оценки (None - оставить как есть)

    Returns:
        (mean, variance) после обновления
    """
    with session_scope() as session:
        activity = _get_activity(session, activity_id)

        optimistic = activity.optimistic if optimistic is None else optimistic
        most_likely = activity.most_likely if most_likely is None else most_likely
        pessimistic = activity.pessimistic if pessimistic is None else pessimistic

        # Отклоняем правку целиком, если хотя бы одна оценка некорректна
        validate_estimates(optimistic, most_likely, pessimistic, activity_id=activity_id, name=activity.name)

        activity.optimistic = optimistic
        activity.most_likely = most_likely
        activity.pessimistic = pessimistic
        activity.mean, activity.variance = derive_estimates(optimistic, most_likely, pessimistic)
        return activity.mean, activity.variance


def set_activity_predecessors(activity_id, names):
    """
    Заменяет список предшественников работы.

    Пустые названия и ссылка работы на саму себя отбрасываются. Ссылки на
    еще не существующие работы допустимы.
    """
    with session_scope() as session:
        activity = _get_activity(session, activity_id)
        activity.predecessors.clear()
        for predecessor_name in planning_models.normalize_predecessors(names):
            if predecessor_name != activity.name:
                activity.predecessors.append(ActivityPredecessor(predecessor_name=predecessor_name))


def delete_activity(activity_id):
    """
    Удаляет работу.

    Returns:
        True если работа была удалена, False если не найдена
    """
    with session_scope() as session:
        activity = session.get(Activity, activity_id)
        if not activity:
            return False
        session.delete(activity)
        logger.info(f"Удалена работа {activity.name or '(без названия)'} (ID: {activity_id})")
        return True


def get_project_activity(project_id, activity_id):
    """
    Возвращает снимок работы, только если она принадлежит проекту.

    Returns:
        planning.models.Activity или None
    """
    for activity in get_project_activities(project_id):
        if activity.id == activity_id:
            return activity
    return None


def get_project_activities(project_id):
    """
    Возвращает свежий снимок работ проекта для расчета.

    Returns:
        Список planning.models.Activity в порядке создания
    """
    with session_scope() as session:
        activities = (
            session.query(Activity)
            .filter(Activity.project_id == project_id)
            .order_by(Activity.id)
            .all()
        )
        return [planning_models.Activity(
            id=activity.id,
            name=activity.name,
            predecessors=[link.predecessor_name for link in activity.predecessors],
            optimistic=activity.optimistic,
            most_likely=activity.most_likely,
            pessimistic=activity.pessimistic
        ) for activity in activities]


def filter_activities(activities, text):
    """Фильтр работ по подстроке в названии без учета регистра."""
    text = (text or "").lower()
    return [activity for activity in activities if text in activity.name.lower()]
