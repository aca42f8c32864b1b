"""Centralized dependency injection container."""
from dependency_injector import containers, providers

from core.settings import OPENAI_TIMEOUT_SECONDS, SETTINGS
from infra.resources import DatabaseResource, OpenAIResource


class InfrastructureContainer(containers.DeclarativeContainer):
    """Infrastructure layer dependencies."""

    settings = providers.Object(SETTINGS)

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=settings.provided.DATABASE.DATABASE_URL,
        pool_size=settings.provided.DATABASE.DB_POOL_SIZE,
        max_overflow=settings.provided.DATABASE.DB_MAX_OVERFLOW,
        echo=settings.provided.DATABASE.DB_ECHO,
    )

    # OpenAI
    openai_client = providers.Resource(
        OpenAIResource,
        api_key=settings.provided.OPENAI.OPENAI_API_KEY.get_secret_value.call(),
        timeout=OPENAI_TIMEOUT_SECONDS,
        max_retries=settings.provided.OPENAI.OPENAI_MAX_RETRIES,
        base_url=settings.provided.OPENAI.OPENAI_BASE_URL,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    infrastructure = providers.DependenciesContainer()

    conversation_service = providers.Factory(
        "api.features.conversation.service.ConversationService",
    )

    chat_client = providers.Singleton(
        "api.features.chat.client.OpenAIChatClient",
        openai_resource=infrastructure.openai_client,
    )

    chat_service = providers.Factory(
        "api.features.chat.service.ChatService",
        conversation_service=conversation_service,
        chat_client=chat_client,
        model_name=infrastructure.settings.provided.OPENAI.OPENAI_MODEL,
        default_user_id=infrastructure.settings.provided.APP.DEFAULT_USER_ID,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    infrastructure = providers.DependenciesContainer()
    services = providers.DependenciesContainer()

    chat_controller = providers.Factory(
        "api.features.chat.controller.ChatController",
        chat_service=services.chat_service,
    )

    conversation_controller = providers.Factory(
        "api.features.conversation.controller.ConversationController",
        conversation_service=services.conversation_service,
        default_user_id=infrastructure.settings.provided.APP.DEFAULT_USER_ID,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.main",
            "api.shared.db",
            "api.features.chat.router",
            "api.features.conversation.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(
        ControllerContainer, infrastructure=infrastructure, services=services
    )
