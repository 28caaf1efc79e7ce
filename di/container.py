from __future__ import annotations

from dependency_injector import containers, providers

from core.settings import SETTINGS
from infra.resources import DatabaseResource


class InfrastructureContainer(containers.DeclarativeContainer):
    config = providers.Configuration()

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services: response generation and the conversation service."""

    # One generator per process; the chat model client is built on first use
    response_generator = providers.Singleton(
        "counselor.generator.ResponseGenerator",
        model=SETTINGS.OPENAI.OPENAI_MODEL,
        temperature=SETTINGS.OPENAI.OPENAI_TEMPERATURE,
        max_tokens=SETTINGS.OPENAI.OPENAI_MAX_TOKENS,
        api_key=SETTINGS.OPENAI.OPENAI_API_KEY.get_secret_value(),
    )

    conversation_service = providers.Factory(
        "api.features.conversation.service.ConversationService",
        generator=response_generator,
        history_limit=SETTINGS.CHAT.HISTORY_LIMIT,
        preview_limit=SETTINGS.CHAT.PREVIEW_LIMIT,
        default_page_size=SETTINGS.CHAT.DEFAULT_PAGE_SIZE,
        max_page_size=SETTINGS.CHAT.MAX_PAGE_SIZE,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    conversation_controller = providers.Factory(
        "api.features.conversation.controller.ConversationController",
        conversation_service=services.conversation_service,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.main",
            "api.shared.db",
            "api.features.conversation.controller",
            "api.features.conversation.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer)
    controllers = providers.Container(ControllerContainer, services=services)
