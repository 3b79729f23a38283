"""
Work item deep dive service
Collects a work item, its discussion, the pull requests it mentions (with
their human conversation threads) and its inline images in one call
"""
import logging
from typing import Any, Dict, List, Optional

from azure.devops.exceptions import AzureDevOpsClientRequestError
from msrest.exceptions import ClientException

from ..clients import get_pull_request_by_id
from ..constants import FieldNames, ExpandOptions, QueryLimits, PR_SCAN_FIELDS, IMAGE_SCAN_FIELDS
from ..decorators import azure_devops_operation, validate_work_item_id, extract_status_code
from ..errors import PullRequestResolutionError
from ..inline_images import fetch_inline_images
from ..log_sanitizer import safe_log_error
from ..models import PrReference, format_date, format_identity
from ..pr_references import collect_pr_references
from ..threads import build_conversation_threads
from ..validation import validate_pull_request_id

logger = logging.getLogger(__name__)


class DeepDiveService:
    """Service assembling the full context of a single work item"""

    def __init__(self, auth, project: str):
        """
        Initialize deep dive service

        Args:
            auth: AzureDevOpsAuth instance
            project: Azure DevOps project name
        """
        self.auth = auth
        self.project = project
        self._wit_client = None
        self._git_client = None

    @property
    def wit_client(self):
        """Lazy load work item tracking client"""
        if not self._wit_client:
            self._wit_client = self.auth.get_client('work_item_tracking')
        return self._wit_client

    @property
    def git_client(self):
        """Lazy load git client"""
        if not self._git_client:
            self._git_client = self.auth.get_client('git')
        return self._git_client

    @validate_work_item_id
    @azure_devops_operation(log_level=logging.INFO)
    async def work_item_deep_dive(self, work_item_id: int) -> Dict[str, Any]:
        """
        Gather everything known about a work item.

        Pull request and image failures are reported inline, per entry. Only
        a missing work item aborts the call, with a top-level error object.

        Args:
            work_item_id: Work item ID

        Returns:
            Dictionary with 'work_item', 'discussion', 'pull_requests' and
            'inline_images', or {'error': ...} when the work item does not exist
        """
        work_item = self._get_root_work_item(work_item_id)
        if not work_item:
            logger.info(f"Work item {work_item_id} not found in project {self.project}")
            return {'error': f"Work item {work_item_id} not found."}

        fields = work_item.fields or {}
        comments = self._get_comments(work_item_id)
        comment_texts = [c.text for c in comments]

        # Pull requests: relation URLs first, then HTML fields, then comments
        pr_sources = [r.url for r in work_item.relations or []]
        pr_sources.extend(fields.get(name) for name in PR_SCAN_FIELDS)
        pr_sources.extend(comment_texts)

        references = collect_pr_references(pr_sources)
        logger.debug(f"Work item {work_item_id} references {len(references)} pull request(s)")

        pull_requests = [self._load_pull_request_entry(ref) for ref in references]

        image_sources = [fields.get(name) for name in IMAGE_SCAN_FIELDS]
        image_sources.extend(comment_texts)
        inline_images = fetch_inline_images(self.auth.session, image_sources, self.auth.organization_url)

        return {
            'work_item': self._format_work_item(work_item),
            'discussion': [self._format_comment(c) for c in comments],
            'pull_requests': pull_requests,
            'inline_images': [image.to_dict() for image in inline_images]
        }

    @azure_devops_operation()
    async def get_pull_request_conversation(
        self,
        pull_request_id: int,
        repository_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Get a pull request with its filtered conversation threads.

        Args:
            pull_request_id: Pull request ID
            repository_id: Repository ID or name; looked up from the pull
                request when omitted

        Returns:
            Pull request details with 'comment_threads'

        Raises:
            PullRequestResolutionError: If the repository cannot be determined
            NotFoundError: If the pull request does not exist
        """
        validate_pull_request_id(pull_request_id)
        return self._pull_request_conversation(pull_request_id, repository_id)

    def _get_root_work_item(self, work_item_id: int):
        try:
            return self.wit_client.get_work_item(
                work_item_id,
                project=self.project,
                expand=ExpandOptions.ALL
            )
        except AzureDevOpsClientRequestError as e:
            if extract_status_code(e) == 404:
                return None
            raise

    def _get_comments(self, work_item_id: int) -> List[Any]:
        """Discussion comments; unreadable comments count as none."""
        try:
            comment_list = self.wit_client.get_comments(
                self.project,
                work_item_id,
                top=QueryLimits.COMMENTS_TOP
            )
        except ClientException as e:
            logger.warning(safe_log_error(e, f"Could not read comments of work item {work_item_id}"))
            return []
        return (comment_list.comments if comment_list else None) or []

    def _load_pull_request_entry(self, reference: PrReference) -> Dict[str, Any]:
        try:
            return self._pull_request_conversation(reference.pr_id, reference.repo_id)
        except Exception as e:
            logger.warning(safe_log_error(e, f"Could not load pull request {reference.pr_id}"))
            return {
                'pull_request_id': reference.pr_id,
                'repo_id': reference.repo_id,
                'error': str(e)
            }

    def _resolve_repository_id(self, pull_request_id: int) -> str:
        pull_request = get_pull_request_by_id(
            self.auth.session,
            self.auth.organization_url,
            pull_request_id,
            project=self.project
        )

        repository = (pull_request or {}).get('repository') or {}
        repository_id = repository.get('id')
        if not repository_id or not str(repository_id).strip():
            raise PullRequestResolutionError(pull_request_id)

        return repository_id

    def _pull_request_conversation(
        self,
        pull_request_id: int,
        repository_id: Optional[str] = None
    ) -> Dict[str, Any]:
        if not repository_id or not repository_id.strip():
            repository_id = self._resolve_repository_id(pull_request_id)

        pull_request = self.git_client.get_pull_request(
            repository_id,
            pull_request_id,
            project=self.project
        )
        threads = self.git_client.get_threads(
            repository_id,
            pull_request_id,
            project=self.project
        )

        result = self._format_pull_request(pull_request)
        result['comment_threads'] = [t.to_dict() for t in build_conversation_threads(threads)]
        return result

    @staticmethod
    def _format_pull_request(pr) -> Dict[str, Any]:
        """Format pull request for response"""
        return {
            'pull_request_id': pr.pull_request_id,
            'title': pr.title,
            'description': pr.description,
            'status': pr.status,
            'created_by': format_identity(pr.created_by),
            'creation_date': format_date(pr.creation_date),
            'source_branch': pr.source_ref_name,
            'target_branch': pr.target_ref_name,
            'repository': pr.repository.name if pr.repository else None
        }

    @staticmethod
    def _format_comment(comment) -> Dict[str, Any]:
        return {
            'author': format_identity(comment.created_by),
            'text': comment.text,
            'date': format_date(comment.created_date)
        }

    @staticmethod
    def _format_work_item(wi) -> Dict[str, Any]:
        """Format work item for response"""
        fields = wi.fields or {}

        return {
            'id': wi.id,
            'title': fields.get(FieldNames.TITLE),
            'type': fields.get(FieldNames.WORK_ITEM_TYPE),
            'state': fields.get(FieldNames.STATE),
            'reason': fields.get(FieldNames.REASON),
            'assigned_to': format_identity(fields.get(FieldNames.ASSIGNED_TO)),
            'created_by': format_identity(fields.get(FieldNames.CREATED_BY)),
            'created_date': format_date(fields.get(FieldNames.CREATED_DATE)),
            'changed_date': format_date(fields.get(FieldNames.CHANGED_DATE)),
            'iteration_path': fields.get(FieldNames.ITERATION_PATH),
            'area_path': fields.get(FieldNames.AREA_PATH),
            'priority': fields.get(FieldNames.PRIORITY),
            'severity': fields.get(FieldNames.SEVERITY),
            'description': fields.get(FieldNames.DESCRIPTION),
            'repro_steps': fields.get(FieldNames.REPRO_STEPS),
            'acceptance_criteria': fields.get(FieldNames.ACCEPTANCE_CRITERIA),
            'tags': fields.get(FieldNames.TAGS)
        }
