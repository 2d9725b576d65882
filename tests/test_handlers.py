"""
Tests for the conversation handlers that edit and look up project activities.

Telegram objects are replaced with mocks; the store is a real SQLite file.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from bot import handlers
from bot.messages import ACTIVITY_NOT_FOUND_MESSAGE
from bot.states import BotStates


def callback_update(data, user_id=10):
    query = MagicMock()
    query.data = data
    query.answer = AsyncMock()
    query.edit_message_text = AsyncMock()
    query.message.reply_text = AsyncMock()

    update = MagicMock()
    update.callback_query = query
    update.effective_user.id = user_id
    return update


def text_update(text, user_id=10):
    update = MagicMock()
    update.callback_query = None
    update.message.text = text
    update.message.reply_text = AsyncMock()
    update.effective_user.id = user_id
    return update


def run(handler, update, context):
    return asyncio.run(handler(update, context))


@pytest.fixture
def project(store):
    project_id = store.create_new_project("Alpha", owner_id=10)
    store.add_activity(project_id, name="Design", optimistic=1, most_likely=2, pessimistic=3)
    store.add_activity(project_id, name="Build", predecessors=["Design"], optimistic=1, most_likely=1, pessimistic=1)
    return project_id


class TestProjectAccess:

    def test_foreign_project_is_not_opened(self, store, project):
        context = SimpleNamespace(user_data={})

        state = run(handlers.select_project, callback_update(f"project_{project}", user_id=99), context)

        assert state == BotStates.MAIN_MENU
        assert 'project_id' not in context.user_data

    def test_own_project_is_opened(self, store, project):
        context = SimpleNamespace(user_data={})

        state = run(handlers.select_project, callback_update(f"project_{project}"), context)

        assert state == BotStates.PROJECT_MENU
        assert context.user_data['project_id'] == project

    def test_activity_of_another_project_is_not_deleted(self, store, project):
        other = store.create_new_project("Beta", owner_id=10)
        foreign_id = store.add_activity(other, name="Foreign")
        update = callback_update(f"delete_{foreign_id}")

        state = run(handlers.delete_activity_handler, update, SimpleNamespace(user_data={'project_id': project}))

        assert state == BotStates.PROJECT_MENU
        assert store.get_project_activity(other, foreign_id) is not None
        update.callback_query.message.reply_text.assert_awaited_once_with(ACTIVITY_NOT_FOUND_MESSAGE)


class TestEditActivity:

    def test_edit_estimates(self, store, project):
        design = store.get_project_activities(project)[0]
        context = SimpleNamespace(user_data={'project_id': project})

        assert run(handlers.select_edit_activity, callback_update(f"edit_{design.id}"), context) == BotStates.EDIT_ACTIVITY
        assert run(handlers.request_edit_value, callback_update("field_estimates"), context) == \
            BotStates.EDIT_ACTIVITY_VALUE
        assert run(handlers.edit_activity_value, text_update("0 3 6"), context) == BotStates.PROJECT_MENU

        design = store.get_project_activities(project)[0]
        assert (design.optimistic, design.most_likely, design.pessimistic) == (0, 3, 6)
        assert design.mean == pytest.approx(3)
        assert 'activity_id' not in context.user_data

    def test_edit_predecessors(self, store, project):
        build = store.get_project_activities(project)[1]
        context = SimpleNamespace(user_data={'project_id': project, 'activity_id': build.id,
                                             'edit_field': 'predecessors'})

        run(handlers.edit_activity_value, text_update("-"), context)

        assert store.get_project_activities(project)[1].predecessors == ()

    def test_invalid_name_keeps_asking(self, store, project):
        design = store.get_project_activities(project)[0]
        context = SimpleNamespace(user_data={'project_id': project, 'activity_id': design.id, 'edit_field': 'name'})

        state = run(handlers.edit_activity_value, text_update("Two words"), context)

        assert state == BotStates.EDIT_ACTIVITY_VALUE
        assert store.get_project_activities(project)[0].name == "Design"

    def test_foreign_activity_cannot_be_selected(self, store, project):
        other = store.create_new_project("Beta", owner_id=10)
        foreign_id = store.add_activity(other, name="Foreign")
        context = SimpleNamespace(user_data={'project_id': project})

        state = run(handlers.select_edit_activity, callback_update(f"edit_{foreign_id}"), context)

        assert state == BotStates.PROJECT_MENU
        assert 'activity_id' not in context.user_data


def test_filter_activities_by_name(store, project):
    update = text_update("des")

    state = run(handlers.filter_activities_handler, update, SimpleNamespace(user_data={'project_id': project}))

    assert state == BotStates.PROJECT_MENU
    reply = update.message.reply_text.await_args.args[0]
    assert "Design" in reply
    assert "Build" not in reply
