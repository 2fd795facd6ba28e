"""Tests for comment threads and voting."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fiverrclaw.errors import NotFoundError
from fiverrclaw.models.comment import AuthorType, CommentVote, VoterKey
from fiverrclaw.schemas.comment import CommentCreate
from fiverrclaw.services import comment as comment_service
from tests.conftest import post_job, register_agent, register_worker


async def _comment(client: AsyncClient, job_id: str, headers: dict, content: str, **extra) -> dict:
    resp = await client.post(
        f"/job/{job_id}/comments", json={"content": content, **extra}, headers=headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["comment"]


async def _vote(client: AsyncClient, comment_id: str, headers: dict, vote: str) -> dict:
    resp = await client.post(f"/comment/{comment_id}/vote", json={"vote": vote}, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Posting
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_agent_and_worker_can_comment(client: AsyncClient) -> None:
    agent_id, agent_headers = await register_agent(client, name="Chatty Bot")
    worker_id, worker_headers = await register_worker(client)
    job_id = await post_job(client, agent_headers)

    resp = await client.post(
        f"/job/{job_id}/comments", json={"content": "  Any takers?  "}, headers=agent_headers
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Comment posted"
    assert body["comment"]["content"] == "Any takers?"
    assert body["comment"]["authorType"] == "agent"
    assert body["comment"]["authorId"] == agent_id
    assert body["comment"]["authorName"] == "Chatty Bot"
    assert body["comment"]["score"] == 0

    comment = await _comment(client, job_id, worker_headers, "On my way")
    assert comment["authorType"] == "worker"
    assert comment["authorId"] == worker_id


@pytest.mark.asyncio
async def test_comment_requires_auth(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    job_id = await post_job(client, agent_headers)

    resp = await client.post(f"/job/{job_id}/comments", json={"content": "hello"})
    assert resp.status_code == 401

    resp = await client.post(
        f"/job/{job_id}/comments", json={"content": "hello"}, headers={"x-api-key": "nope"}
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_blank_comment_rejected(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    job_id = await post_job(client, agent_headers)
    resp = await client.post(f"/job/{job_id}/comments", json={"content": "   "}, headers=agent_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_comment_on_unknown_job(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    resp = await client.post(
        f"/job/{uuid.uuid4()}/comments", json={"content": "hello"}, headers=agent_headers
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "Job not found"}


@pytest.mark.asyncio
async def test_reply_parent_must_belong_to_job(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    job_a = await post_job(client, agent_headers, title="A")
    job_b = await post_job(client, agent_headers, title="B")
    parent = await _comment(client, job_a, agent_headers, "On job A")

    resp = await client.post(
        f"/job/{job_b}/comments",
        json={"content": "Wrong thread", "parentId": parent["id"]},
        headers=agent_headers,
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "Parent comment not found"}

    resp = await client.post(
        f"/job/{job_a}/comments",
        json={"content": "Ghost parent", "parentId": str(uuid.uuid4())},
        headers=agent_headers,
    )
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_replies_nest_under_parent(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    _, worker_headers = await register_worker(client)
    job_id = await post_job(client, agent_headers)

    top = await _comment(client, job_id, agent_headers, "Question")
    resp = await client.post(
        f"/job/{job_id}/comments",
        json={"content": "Answer", "parentId": top["id"]},
        headers=worker_headers,
    )
    assert resp.json()["message"] == "Comment posted"
    reply = resp.json()["comment"]

    # A reply to a reply joins the same thread and says so
    resp = await client.post(
        f"/job/{job_id}/comments",
        json={"content": "Thanks", "parentId": reply["id"]},
        headers=agent_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["message"] == "Reply posted under the top-level comment"
    nested = resp.json()["comment"]
    assert nested["parentId"] == top["id"]

    resp = await client.get(f"/job/{job_id}/comments")
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 3
    assert len(body["comments"]) == 1
    thread = body["comments"][0]
    assert thread["id"] == top["id"]
    assert {r["id"] for r in thread["replies"]} == {reply["id"], nested["id"]}
    assert all(r["replies"] == [] for r in thread["replies"])


@pytest.mark.asyncio
async def test_list_comments_unknown_job(client: AsyncClient) -> None:
    resp = await client.get(f"/job/{uuid.uuid4()}/comments")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_comments_ordered_by_score(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    job_id = await post_job(client, agent_headers)

    older = await _comment(client, job_id, agent_headers, "First in")
    popular = await _comment(client, job_id, agent_headers, "Best idea")
    newer = await _comment(client, job_id, agent_headers, "Last in")

    voters = [(await register_worker(client))[1] for _ in range(3)]
    for voter in voters:
        await _vote(client, popular["id"], voter, "up")
    # Net +1 from two ups and a down
    await _vote(client, older["id"], voters[0], "up")
    await _vote(client, older["id"], voters[1], "up")
    await _vote(client, older["id"], voters[2], "down")

    comments = (await client.get(f"/job/{job_id}/comments")).json()["comments"]
    assert [c["id"] for c in comments] == [popular["id"], older["id"], newer["id"]]
    assert comments[1]["score"] == 1
    assert comments[0]["score"] == 3
    assert comments[0]["upvotes"] == 3


# ---------------------------------------------------------------------------
# Voting
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_vote_up_then_remove(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    _, worker_headers = await register_worker(client)
    job_id = await post_job(client, agent_headers)
    comment = await _comment(client, job_id, agent_headers, "Vote on me")

    body = await _vote(client, comment["id"], worker_headers, "up")
    assert body == {"message": "Voted up", "upvotes": 1, "downvotes": 0, "score": 1}

    # Repeating the same vote does not count twice
    body = await _vote(client, comment["id"], worker_headers, "up")
    assert body["upvotes"] == 1

    body = await _vote(client, comment["id"], worker_headers, "remove")
    assert body == {"message": "Vote removed", "upvotes": 0, "downvotes": 0, "score": 0}


@pytest.mark.asyncio
async def test_vote_switch_moves_counters(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    _, worker_headers = await register_worker(client)
    job_id = await post_job(client, agent_headers)
    comment = await _comment(client, job_id, agent_headers, "Controversial")

    await _vote(client, comment["id"], worker_headers, "up")
    body = await _vote(client, comment["id"], worker_headers, "down")
    assert body["upvotes"] == 0
    assert body["downvotes"] == 1
    assert body["score"] == -1

    await _vote(client, comment["id"], agent_headers, "up")
    listed = (await client.get(f"/job/{job_id}/comments")).json()["comments"][0]
    assert (listed["upvotes"], listed["downvotes"], listed["score"]) == (1, 1, 0)


@pytest.mark.asyncio
async def test_remove_without_vote_is_noop(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    job_id = await post_job(client, agent_headers)
    comment = await _comment(client, job_id, agent_headers, "Untouched")

    body = await _vote(client, comment["id"], agent_headers, "remove")
    assert (body["upvotes"], body["downvotes"]) == (0, 0)


@pytest.mark.asyncio
async def test_vote_validation(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    job_id = await post_job(client, agent_headers)
    comment = await _comment(client, job_id, agent_headers, "Vote target")

    resp = await client.post(
        f"/comment/{comment['id']}/vote", json={"vote": "sideways"}, headers=agent_headers
    )
    assert resp.status_code == 400

    resp = await client.post(f"/comment/{comment['id']}/vote", json={"vote": "up"})
    assert resp.status_code == 401

    resp = await client.post(
        f"/comment/{uuid.uuid4()}/vote", json={"vote": "up"}, headers=agent_headers
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "Comment not found"}


@pytest.mark.asyncio
async def test_agent_and_worker_with_same_id_vote_separately(
    client: AsyncClient, db_session: AsyncSession
) -> None:
    _, agent_headers = await register_agent(client)
    job_id = uuid.UUID(await post_job(client, agent_headers))

    shared_id = uuid.uuid4()
    as_agent = VoterKey(AuthorType.AGENT, shared_id)
    as_worker = VoterKey(AuthorType.WORKER, shared_id)
    assert as_agent != as_worker

    comment = await comment_service.post_comment(
        db_session, job_id, as_agent, "Twin", CommentCreate(content="Same id, two callers")
    )
    await comment_service.vote(db_session, comment.comment_id, as_agent, "up")
    updated = await comment_service.vote(db_session, comment.comment_id, as_worker, "up")
    assert updated.upvotes == 2

    updated = await comment_service.vote(db_session, comment.comment_id, as_worker, "remove")
    assert updated.upvotes == 1


@pytest.mark.asyncio
async def test_vote_unknown_comment_raises(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await comment_service.vote(
            db_session, uuid.uuid4(), VoterKey(AuthorType.WORKER, uuid.uuid4()), "up"
        )


@pytest.mark.asyncio
async def test_overlapping_votes_by_same_voter_keep_counters_consistent(
    client: AsyncClient,
    session_factory: async_sessionmaker[AsyncSession],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A vote whose lookup missed a concurrently committed row is replayed, not a 500."""
    _, agent_headers = await register_agent(client)
    job_id = uuid.UUID(await post_job(client, agent_headers))
    voter = VoterKey(AuthorType.WORKER, uuid.uuid4())

    async with session_factory() as session:
        author = VoterKey(AuthorType.AGENT, uuid.uuid4())
        comment = await comment_service.post_comment(
            session, job_id, author, "Racer", CommentCreate(content="Race me")
        )
        # First request wins the race and commits its vote
        await comment_service.vote(session, comment.comment_id, voter, "up")

    real_find_vote = comment_service._find_vote
    stale_reads = [None]

    async def find_vote_seeing_stale_state(db, comment_id, key):  # type: ignore[no-untyped-def]
        # The second request read before the first committed
        if stale_reads:
            return stale_reads.pop()
        return await real_find_vote(db, comment_id, key)

    monkeypatch.setattr(comment_service, "_find_vote", find_vote_seeing_stale_state)

    async with session_factory() as session:
        updated = await comment_service.vote(session, comment.comment_id, voter, "up")
        assert (updated.upvotes, updated.downvotes) == (1, 0)

        rows = await session.execute(
            select(func.count(CommentVote.vote_id)).where(CommentVote.comment_id == comment.comment_id)
        )
        assert rows.scalar_one() == updated.upvotes + updated.downvotes
