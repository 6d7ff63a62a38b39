"""Centralized dependency injection container."""
from dependency_injector import containers, providers

from api.features.chat.repositories.history_repository import ChatHistoryRepository
from core.settings import SETTINGS
from infra.resources import DatabaseResource


class InfrastructureContainer(containers.DeclarativeContainer):
    """Infrastructure layer dependencies."""

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
    )

    # Completion endpoint (Groq, OpenAI-compatible)
    completion_client = providers.Singleton(
        "llm.client.GroqCompletionClient",
        api_key=SETTINGS.COMPLETION.GROQ_API_KEY.get_secret_value(),
        base_url=SETTINGS.COMPLETION.GROQ_BASE_URL,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    infrastructure = providers.DependenciesContainer()

    # Singleton so per-user turn locks are shared across requests
    chat_service = providers.Singleton(
        "api.features.chat.service.ChatService",
        completion_client=infrastructure.completion_client,
        model=SETTINGS.COMPLETION.COMPLETION_MODEL,
        temperature=SETTINGS.COMPLETION.COMPLETION_TEMPERATURE,
        max_output_tokens=SETTINGS.COMPLETION.COMPLETION_MAX_TOKENS,
        top_p=SETTINGS.COMPLETION.COMPLETION_TOP_P,
        window_size=SETTINGS.CHAT.CHAT_HISTORY_WINDOW,
    )

    # Repositories are bound to the per-request session by the controller
    history_store_factory = providers.Object(ChatHistoryRepository)


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    chat_controller = providers.Factory(
        "api.features.chat.controller.ChatController",
        chat_service=services.chat_service,
        history_store_factory=services.history_store_factory,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.main",
            "api.shared.db",
            "api.features.chat.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(ControllerContainer, services=services)
