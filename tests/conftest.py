import copy
import os
import uuid
from types import SimpleNamespace

import pytest

os.environ.setdefault("ENVIRONMENT", "testing")


def _matches(doc, query):
    for key, expected in (query or {}).items():
        value = doc.get(key)
        if isinstance(expected, dict) and "$gte" in expected:
            if value is None or value < expected["$gte"]:
                return False
        elif value != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    def sort(self, key, direction=1):
        self.docs = sorted(self.docs, key=lambda d: d.get(key) or 0, reverse=direction < 0)
        return self

    def limit(self, n):
        if n:
            self.docs = self.docs[:n]
        return self

    async def to_list(self, length=None):
        docs = self.docs[:length] if length else self.docs
        return [copy.deepcopy(d) for d in docs]


class FakeCollection:
    """Just enough of a motor collection for the store and orchestrator"""

    def __init__(self, name="fake", docs=None):
        self.name = name
        self.docs = [copy.deepcopy(d) for d in (docs or [])]
        self.indexes = []

    async def find_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query=None):
        return FakeCursor([d for d in self.docs if _matches(d, query)])

    async def insert_one(self, doc):
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=str(uuid.uuid4()))

    async def insert_many(self, docs):
        self.docs.extend(copy.deepcopy(d) for d in docs)
        return SimpleNamespace(inserted_ids=[str(uuid.uuid4()) for _ in docs])

    async def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                for key, delta in update.get("$inc", {}).items():
                    doc[key] = doc.get(key, 0) + delta
                return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if upsert:
            doc = {k: v for k, v in query.items() if not isinstance(v, dict)}
            doc.update(copy.deepcopy(update.get("$set", {})))
            for key, delta in update.get("$inc", {}).items():
                doc[key] = doc.get(key, 0) + delta
            self.docs.append(doc)
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=str(uuid.uuid4()))
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def delete_many(self, query):
        before = len(self.docs)
        self.docs = [d for d in self.docs if not _matches(d, query)]
        return SimpleNamespace(deleted_count=before - len(self.docs))

    async def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return "_".join(f"{k}_{d}" for k, d in keys)


class StubLLMClient:
    """Replies per model: a string, an exception to raise, or a callable taking the messages"""

    def __init__(self, replies):
        self.replies = replies
        self.calls = []

    def complete(self, messages, model, temperature=0.2, max_tokens=1000):
        self.calls.append(model)
        reply = self.replies.get(model)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(messages)
        return reply


@pytest.fixture
def collections():
    return SimpleNamespace(
        jobs=FakeCollection("job_postings"),
        cache=FakeCollection("cached_portfolios"),
        matches=FakeCollection("candidate_matches"),
        activity=FakeCollection("recruiter_activity"),
        portfolios=FakeCollection("portfolios"),
    )


@pytest.fixture
def store(collections):
    from zigzig.services.match_store import MatchStore
    return MatchStore(collections.jobs, collections.cache, collections.matches, collections.activity)


@pytest.fixture
def e2e_portfolio():
    return {
        "skills": ["Python", "Django", "AWS"],
        "experience": [{"title": "Senior Backend Engineer", "company": "X", "duration": "2019-2023"}],
    }


@pytest.fixture
def e2e_job_requirements():
    from zigzig.models.recruiter import JobRequirements
    return JobRequirements(required_skills=["Python", "AWS"], min_experience_years=3, experience_level="senior")


def make_job_doc(job_id="job-1", recruiter_id="recruiter-1", requirements=None):
    from zigzig.models.recruiter import JobPosting, JobRequirements
    job = JobPosting(
        id=job_id,
        recruiter_id=recruiter_id,
        title="Backend Engineer",
        description="Build APIs",
        extracted_requirements=requirements or JobRequirements(required_skills=["Python"]),
    )
    return job.model_dump()


def make_portfolio_doc(index, content=None, published=True):
    return {
        "id": f"portfolio-{index}",
        "user_id": f"user-{index}",
        "slug": f"candidate-{index}",
        "is_published": published,
        "content": content if content is not None else {
            "name": f"Candidate {index}",
            "title": "Software Engineer",
            "skills": ["Python", "PostgreSQL"],
            "experience": [{"title": "Engineer", "company": f"Company {index}", "duration": "2020-2023"}],
        },
    }
