# -*- coding: utf-8 -*-
"""
Container Factory Module

Responsible for creating and assembling all application dependencies.

This is the **only** instance creation point (Composition Root) for the application.
All service instance creation should be done here, not within individual services.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from app.container import AppContainer

logger = logging.getLogger(__name__)


class AppContainerFactory:
    """Application Container Factory

    Creates and assembles all application dependencies.

    Usage Example:
        # In main.py
        container = AppContainerFactory.create(db_path="library.db")

        # In tests (fake completion client, temporary database)
        container = AppContainerFactory.create_for_testing(db_path=str(tmp_path / "t.db"),
                                                           client=fake_client)
    """

    @staticmethod
    def create(
        config_path: Optional[str] = None,
        db_path: Optional[str] = None,
    ) -> "AppContainer":
        """Create Application Container

        Creates all service instances in dependency order and assembles them into the container.

        Args:
            config_path: Configuration file path (defaults to the user config)
            db_path: Library database path; falls back to `library.db_path`,
                     then to the user data directory

        Returns:
            A configured AppContainer instance
        """
        from services.config_service import ConfigService

        logger.info("Creating application container...")
        config = ConfigService(config_path)
        container = AppContainerFactory._assemble(config, db_path, client=None)
        logger.info("Application container creation complete")
        return container

    @staticmethod
    def create_for_testing(
        db_path: str,
        client: Any,
        config_path: Optional[str] = None,
    ) -> "AppContainer":
        """Create a container for testing

        Args:
            db_path: Database file path (use a temporary file; connections are per thread)
            client: Completion client stand-in
            config_path: Configuration file path

        Returns:
            A configured test AppContainer instance
        """
        from services.config_service import ConfigService

        logger.info("Creating test application container...")
        config = ConfigService(config_path)
        return AppContainerFactory._assemble(config, db_path, client=client)

    @staticmethod
    def _assemble(config: Any, db_path: Optional[str], client: Any) -> "AppContainer":
        from app.container import AppContainer
        from core.database import DatabaseManager
        from services.confirmation_service import ConsoleConfirmationGate
        from services.library_service import LibraryService

        # === 1. Infrastructure Layer ===
        db = DatabaseManager(db_path or config.get("library.db_path") or None)
        logger.debug("Using library database: %s", db.db_path)

        # === 2. Service Layer ===
        library = LibraryService(db=db)
        confirmation_gate = ConsoleConfirmationGate()

        # === 3. LLM Related Services ===
        tagging_service = None
        tagging_error = None
        try:
            from services.llm_tagging_service import LLMTaggingService

            if client is None:
                from services.llm_providers import create_llm_provider
                client = create_llm_provider(config)

            tagging_service = LLMTaggingService(
                config=config,
                store=library,
                client=client,
                confirmation_gate=confirmation_gate,
            )
            logger.info("LLM Tagging Service created successfully")
        except Exception as e:
            tagging_error = str(e)
            logger.warning("LLM Tagging Service creation failed (possibly missing API Key): %s", e)

        return AppContainer(
            config=config,
            db=db,
            library=library,
            tagging=tagging_service,
            tagging_error=tagging_error,
            _confirmation_gate=confirmation_gate,
        )
