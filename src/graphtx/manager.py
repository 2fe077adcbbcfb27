from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Union

from graphtx.exception import RepositoryConfigError
from graphtx.repository import Repository, create_repository

logger = logging.getLogger(__name__)


class RepositoryManager:
    """Directory of repositories addressed by identifier.

    Example:

    ```python
    manager = RepositoryManager(
        {
            "cache": "memory://cache",
            "catalog": "sqlite:///var/lib/catalog.db",
        }
    )
    repository = manager.get_repository("catalog")
    ```
    """

    def __init__(
        self,
        repositories: Optional[Mapping[str, Union[str, Repository]]] = None,
    ) -> None:
        """Initializer for a RepositoryManager

        Args:
            repositories (Mapping[str, Union[str, Repository]], optional):
                Repositories, or DSNs to create them from, by identifier.
                Defaults to `None`.

        Raises:
            RepositoryConfigError: If a DSN cannot be turned into a repository
        """
        self._repositories: Dict[str, Repository] = {}
        for repository_id, repository in (repositories or {}).items():
            self.add_repository(repository_id, repository)

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {sorted(self._repositories)}>"

    def add_repository(
        self, repository_id: str, repository: Union[str, Repository]
    ) -> Repository:
        if not repository_id:
            raise RepositoryConfigError("Repository id must not be empty")
        if isinstance(repository, str):
            repository = create_repository(repository)
        self._repositories[repository_id] = repository
        logger.debug("Added %s as %r", repository, repository_id)
        return repository

    def remove_repository(self, repository_id: str) -> Repository:
        try:
            return self._repositories.pop(repository_id)
        except KeyError as e:
            raise RepositoryConfigError(
                f"Unknown repository {repository_id!r}"
            ) from e

    def has_repository(self, repository_id: str) -> bool:
        return repository_id in self._repositories

    @property
    def repository_ids(self) -> List[str]:
        return list(self._repositories)

    def get_repository(self, repository_id: str) -> Repository:
        """Fetch a repository by its identifier

        Args:
            repository_id (str): The identifier

        Raises:
            RepositoryConfigError: If there is no such repository

        Returns:
            Repository: The repository
        """
        try:
            return self._repositories[repository_id]
        except KeyError as e:
            raise RepositoryConfigError(
                f"Unknown repository {repository_id!r}"
            ) from e

    async def shutdown(self) -> None:
        """Shut down every initialized repository"""
        for repository in self._repositories.values():
            if repository.is_initialized():
                await repository.shutdown()
