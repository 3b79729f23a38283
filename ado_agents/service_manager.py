"""
Service Manager for handling multiple Azure DevOps projects
Provides lazy-loading service instances per project
"""
from typing import Any, Dict, List, Optional

from .auth import AzureDevOpsAuth
from .services.deep_dive_service import DeepDiveService
from .services.hierarchy_service import HierarchyService
from .services.query_service import QueryService
from .validation import ValidationError, validate_project


class ServiceManager:
    """
    Manages service instances for multiple Azure DevOps projects

    Features:
    - Single authentication instance shared across all projects
    - Lazy-loading: services created only when first accessed
    - Service instances (never results) reused per project

    Example:
        auth = AzureDevOpsAuth(org_url)
        await auth.initialize()

        manager = ServiceManager(auth, default_project="Contoso")

        service = manager.get_deep_dive_service()          # Contoso
        other = manager.get_hierarchy_service("Fabrikam")
    """

    def __init__(self, auth: AzureDevOpsAuth, default_project: Optional[str] = None):
        """
        Initialize service manager

        Args:
            auth: Authenticated AzureDevOpsAuth instance
            default_project: Project used when a tool call names none
        """
        if not auth or not auth.connection:
            raise ValueError(
                "ServiceManager requires an initialized AzureDevOpsAuth instance. "
                "Call auth.initialize() before creating ServiceManager."
            )

        self.auth = auth
        self.default_project = default_project

        # Service instance caches (keyed by project name)
        self._deep_dive_services: Dict[str, DeepDiveService] = {}
        self._hierarchy_services: Dict[str, HierarchyService] = {}
        self._query_services: Dict[str, QueryService] = {}

        self._service_creation_count = 0
        self._reuse_count = 0

    def get_deep_dive_service(self, project: Optional[str] = None) -> DeepDiveService:
        """
        Get or create a DeepDiveService instance for a project

        Raises:
            ValidationError: If no project specified and no default set
        """
        return self._get_or_create(self._deep_dive_services, DeepDiveService, project)

    def get_hierarchy_service(self, project: Optional[str] = None) -> HierarchyService:
        """
        Get or create a HierarchyService instance for a project

        Raises:
            ValidationError: If no project specified and no default set
        """
        return self._get_or_create(self._hierarchy_services, HierarchyService, project)

    def get_query_service(self, project: Optional[str] = None) -> QueryService:
        """
        Get or create a QueryService instance for a project

        Raises:
            ValidationError: If no project specified and no default set
        """
        return self._get_or_create(self._query_services, QueryService, project)

    def _get_or_create(self, services: Dict[str, Any], service_class, project: Optional[str]):
        project = self._resolve_project(project)

        if project in services:
            self._reuse_count += 1
            return services[project]

        service = service_class(self.auth, project)
        services[project] = service
        self._service_creation_count += 1

        return service

    def _resolve_project(self, project: Optional[str]) -> str:
        """
        Resolve project name, using default if not specified

        Raises:
            ValidationError: If no project specified and no default, or the
                name is not a valid project name
        """
        if project:
            return validate_project(project)

        if self.default_project:
            return self.default_project

        raise ValidationError(
            "project",
            "Project name is required. Either specify project parameter or set "
            "AZURE_DEVOPS_PROJECT environment variable as default."
        )

    def get_loaded_projects(self) -> List[str]:
        """Projects that have at least one service instance loaded"""
        projects = set(self._deep_dive_services)
        projects |= set(self._hierarchy_services)
        projects |= set(self._query_services)
        return sorted(projects)

    def clear_all_services(self) -> None:
        """Drop all service instances"""
        self._deep_dive_services.clear()
        self._hierarchy_services.clear()
        self._query_services.clear()

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get service manager statistics

        Returns:
            Dictionary with loaded project and service counts
        """
        return {
            "loaded_projects": len(self.get_loaded_projects()),
            "deep_dive_services": len(self._deep_dive_services),
            "hierarchy_services": len(self._hierarchy_services),
            "query_services": len(self._query_services),
            "service_creations": self._service_creation_count,
            "service_reuses": self._reuse_count,
            "default_project": self.default_project
        }
