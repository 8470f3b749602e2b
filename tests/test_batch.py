"""
Tests for batch orchestration.
"""

import pytest

from scholar_ingest.db.errors import StorageError
from scholar_ingest.ingest.batch import BatchOrchestrator
from scholar_ingest.models import AuthorProfile, SearchResponse
from scholar_ingest.search.serpapi import TransportError


class FakeSearch:
    """Search collaborator returning canned responses or raising per query."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def _answer(self, key, max_results):
        self.calls.append((key, max_results))
        answer = self.responses[key]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def search_by_author(self, name, max_results):
        return self._answer(name, max_results)

    def search_articles(self, query, max_results):
        return self._answer(query, max_results)

    def search_citing_articles(self, citing_set_id, max_results):
        return self._answer(citing_set_id, max_results)

    def search_page(self, query, start, page_size):
        self.calls.append((query, start, page_size))
        answer = self.responses[(query, start)]
        if isinstance(answer, Exception):
            raise answer
        return answer


def profile_response(name, results, extra_profiles=()):
    profiles = [AuthorProfile(name=name, publications=list(results))]
    profiles.extend(extra_profiles)
    return SearchResponse(status="Success", results=list(results), profiles=profiles)


@pytest.fixture
def three_researchers(result_factory):
    return {
        "Alice Author": profile_response(
            "Alice Author",
            [result_factory(f"a{i}", summary="Alice Author - Venue, 2001 - pub.org") for i in range(3)],
        ),
        "Bob Broken": TransportError("Search API returned status 503", status_code=503),
        "Carol Coauthor": profile_response(
            "Carol Coauthor",
            [result_factory(f"c{i}", summary="Carol Coauthor, Alice Author - Venue, 2005 - pub.org") for i in range(2)],
        ),
    }


class TestRun:
    """Tests for BatchOrchestrator.run()."""

    def test_failed_query_does_not_stop_batch(self, pipeline, storage, three_researchers):
        """A failing query is skipped and later queries still run."""
        search = FakeSearch(three_researchers)
        orchestrator = BatchOrchestrator(search, pipeline)

        articles = orchestrator.run(["Alice Author", "Bob Broken", "Carol Coauthor"], per_query_cap=10)

        assert [a.external_id for a in articles] == ["a0", "a1", "a2", "c0", "c1"]
        assert [call[0] for call in search.calls] == ["Alice Author", "Bob Broken", "Carol Coauthor"]
        assert storage.author_named("Alice Author").article_count == 5

    def test_report_records_each_query(self, pipeline, three_researchers):
        """The report keeps one outcome per query, in order."""
        orchestrator = BatchOrchestrator(FakeSearch(three_researchers), pipeline)

        report = orchestrator.run_report(["Alice Author", "Bob Broken", "Carol Coauthor"], per_query_cap=10)

        assert [o.query for o in report.outcomes] == ["Alice Author", "Bob Broken", "Carol Coauthor"]
        assert report.failed_queries == ["Bob Broken"]
        assert "TransportError" in report.outcomes[1].error
        assert report.outcomes[0].profile == "Alice Author"
        assert len(report.outcomes[2].articles) == 2

    def test_per_query_cap(self, pipeline, three_researchers):
        """The cap is passed to the search and bounds ingestion."""
        search = FakeSearch(three_researchers)
        articles = BatchOrchestrator(search, pipeline).run(["Alice Author"], per_query_cap=2)

        assert [a.external_id for a in articles] == ["a0", "a1"]
        assert search.calls == [("Alice Author", 2)]

    def test_only_first_profile_is_ingested(self, pipeline, result_factory):
        """Publications of later profiles are ignored."""
        other = AuthorProfile(name="A Author", publications=[result_factory("other1")])
        response = profile_response("Alice Author", [result_factory("mine1")], extra_profiles=[other])

        articles = BatchOrchestrator(FakeSearch({"Alice": response}), pipeline).run(["Alice"], per_query_cap=10)

        assert [a.external_id for a in articles] == ["mine1"]

    def test_no_profile_yields_nothing(self, pipeline):
        """A query with no profile is empty, not failed."""
        search = FakeSearch({"Nobody": SearchResponse(status="Success")})
        report = BatchOrchestrator(search, pipeline).run_report(["Nobody"], per_query_cap=5)

        assert report.articles == []
        assert report.failed_queries == []

    def test_storage_outage_is_per_query(self, pipeline, storage, three_researchers):
        """Storage failures drop only the affected records."""
        storage.failures["find_by_external_id"] = lambda external_id: external_id.startswith("a")
        articles = BatchOrchestrator(FakeSearch(three_researchers), pipeline).run(
            ["Alice Author", "Carol Coauthor"], per_query_cap=10
        )
        assert [a.external_id for a in articles] == ["c0", "c1"]

    def test_pipeline_exception_is_caught(self, storage, three_researchers):
        """A pipeline error fails its query and the batch goes on."""
        class ExplodingPipeline:
            def ingest_report(self, results, cap):
                raise StorageError("database is gone")

        report = BatchOrchestrator(FakeSearch(three_researchers), ExplodingPipeline()).run_report(
            ["Alice Author", "Carol Coauthor"], per_query_cap=10
        )
        assert report.articles == []
        assert report.failed_queries == ["Alice Author", "Carol Coauthor"]

    def test_empty_batch(self, pipeline):
        """An empty query list yields nothing."""
        assert BatchOrchestrator(FakeSearch({}), pipeline).run([], per_query_cap=10) == []


class TestKeywordAndCiting:
    def test_run_keyword_query(self, pipeline, result_factory):
        """A keyword search ingests up to the cap."""
        response = SearchResponse(status="Success", results=[result_factory("k1"), result_factory("k2")])
        search = FakeSearch({"plant ecology": response})

        articles = BatchOrchestrator(search, pipeline).run_keyword_query("plant ecology", cap=1)

        assert [a.external_id for a in articles] == ["k1"]

    def test_run_keyword_query_from_offset(self, pipeline, result_factory):
        """A non-zero start pages through search_page."""
        response = SearchResponse(status="Success", results=[result_factory("k21"), result_factory("k22")])
        search = FakeSearch({("plant ecology", 20): response})

        articles = BatchOrchestrator(search, pipeline).run_keyword_query("plant ecology", cap=2, start=20)

        assert [a.external_id for a in articles] == ["k21", "k22"]
        assert search.calls == [("plant ecology", 20, 2)]

    def test_run_citing(self, pipeline, result_factory):
        """A citing search ingests the citing articles."""
        response = SearchResponse(status="Success", results=[result_factory("c1")])
        search = FakeSearch({"123456": response})

        articles = BatchOrchestrator(search, pipeline).run_citing("123456", cap=5)

        assert [a.external_id for a in articles] == ["c1"]
        assert search.calls == [("123456", 5)]

    def test_keyword_transport_error_propagates(self, pipeline):
        """Single keyword searches let TransportError through."""
        search = FakeSearch({"q": TransportError("down")})
        with pytest.raises(TransportError):
            BatchOrchestrator(search, pipeline).run_keyword_query("q", cap=5)
