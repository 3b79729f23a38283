"""
Unit tests for pull request reference extraction and deduplication.
"""

import pytest
from ado_agents.models import PrReference
from ado_agents.pr_references import (
    extract_pr_references,
    add_pr_reference,
    collect_pr_references
)


REPO_GUID = "9f3c2a1b-4d5e-46f7-8a9b-0c1d2e3f4a5b"
PROJECT_GUID = "1a2b3c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d"


class TestExtractPrReferences:
    """Test extract_pr_references pattern matching."""

    def test_empty_text(self):
        assert extract_pr_references(None) == []
        assert extract_pr_references("") == []

    def test_bang_mention(self):
        """'!1234' not followed by '[' is a mention without repository."""
        assert extract_pr_references("Fixed in !1234") == [PrReference(None, 1234)]

    def test_markdown_image_is_not_a_mention(self):
        """'![alt](url)' with digits in the URL yields nothing."""
        text = "See ![screenshot](https://example.com/images/5678.png)"
        assert extract_pr_references(text) == []

    def test_artifact_link_encoded(self):
        """vstfs artifact links are URL-decoded before matching."""
        url = f"vstfs:///Git/PullRequestId/{PROJECT_GUID}%2F{REPO_GUID}%2F42"
        assert extract_pr_references(url) == [PrReference(REPO_GUID, 42)]

    def test_pull_request_url(self):
        url = "https://dev.azure.com/contoso/Web/_git/frontend/pullrequest/77"
        assert extract_pr_references(url) == [PrReference("frontend", 77)]

    def test_pull_request_url_case_insensitive(self):
        url = "https://dev.azure.com/contoso/Web/_git/frontend/PullRequest/78"
        assert extract_pr_references(url) == [PrReference("frontend", 78)]

    def test_pull_request_url_with_encoded_repo_name(self):
        url = "https://dev.azure.com/contoso/Web/_git/my%20repo/pullrequest/79"
        assert extract_pr_references(url) == [PrReference("my repo", 79)]

    def test_pr_text_forms(self):
        text = "See PR 101, pr 102, Pull request 103 and pullrequest 104."
        ids = [ref.pr_id for ref in extract_pr_references(text)]
        assert ids == [101, 102, 103, 104]
        assert all(ref.repo_id is None for ref in extract_pr_references(text))

    def test_pr_text_requires_word_boundary(self):
        """'SPR 5' and 'PR 12abc' are not references."""
        assert extract_pr_references("SPR 5 and PR 12abc") == []

    def test_html_anchor_yields_url_and_text_matches(self):
        """An anchor can match both the URL and the visible text."""
        html = '<a href="https://dev.azure.com/o/p/_git/api/pullrequest/9">PR 9</a>'
        refs = extract_pr_references(html)
        assert PrReference("api", 9) in refs
        assert PrReference(None, 9) in refs

    def test_plain_number_is_not_a_reference(self):
        assert extract_pr_references("Build 1234 failed on step 5") == []


class TestAddPrReference:
    """Test deduplication by pull request ID."""

    def test_appends_new_reference(self):
        refs = []
        add_pr_reference(refs, PrReference(None, 1))
        add_pr_reference(refs, PrReference("repo", 2))
        assert refs == [PrReference(None, 1), PrReference("repo", 2)]

    def test_duplicate_without_repo_is_ignored(self):
        refs = [PrReference("repo", 1)]
        add_pr_reference(refs, PrReference(None, 1))
        assert refs == [PrReference("repo", 1)]

    def test_repo_reference_replaces_bare_reference(self):
        refs = [PrReference(None, 1)]
        add_pr_reference(refs, PrReference("repo", 1))
        assert refs == [PrReference("repo", 1)]

    def test_first_repo_reference_wins(self):
        refs = [PrReference("first", 1)]
        add_pr_reference(refs, PrReference("second", 1))
        assert refs == [PrReference("first", 1)]

    def test_blank_repo_counts_as_missing(self):
        refs = [PrReference("  ", 1)]
        add_pr_reference(refs, PrReference("repo", 1))
        assert refs == [PrReference("repo", 1)]

    def test_replacement_keeps_position(self):
        refs = [PrReference(None, 1), PrReference(None, 2)]
        add_pr_reference(refs, PrReference("repo", 1))
        assert [r.pr_id for r in refs] == [1, 2]
        assert refs[0].repo_id == "repo"

    @pytest.mark.parametrize("order", [
        [PrReference(None, 5), PrReference("repo", 5)],
        [PrReference("repo", 5), PrReference(None, 5)],
    ])
    def test_order_independent(self, order):
        """Exactly one entry remains, the one with a repository."""
        refs = []
        for ref in order:
            add_pr_reference(refs, ref)
        assert refs == [PrReference("repo", 5)]


class TestCollectPrReferences:
    """Test collection across several text blobs."""

    def test_collects_across_blobs(self):
        refs = collect_pr_references([
            "Mentioned in !10",
            None,
            "https://dev.azure.com/o/p/_git/svc/pullrequest/10",
            "Also PR 11",
        ])
        assert refs == [PrReference("svc", 10), PrReference(None, 11)]

    def test_no_duplicates(self):
        refs = collect_pr_references(["!3 and PR 3", "Pull request 3"])
        assert refs == [PrReference(None, 3)]

    def test_empty(self):
        assert collect_pr_references([]) == []
