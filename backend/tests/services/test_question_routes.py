"""Route Tests: question endpoints — thin wrappers over the state machine.

Invariants:
    - Successful operations return the OperationResult body
    - Business rejections return 409 with ok=False and the error envelope
    - Schema violations return 400 with field details
    - Unknown questions return 404
"""

BASE = "/api/v1/courses/1/questions"


def _body(student_id=1, **overrides):
    body = {
        "student_user_id": student_id,
        "topic_id": 1,
        "location_id": 1,
        "help_text": "Segfault in lab 4",
    }
    body.update(overrides)
    return body


async def test_add_question_returns_201(client, seed):
    res = await client.post(BASE, json=_body())
    assert res.status_code == 201
    data = res.json()
    assert data["ok"] is True
    assert data["question_id"] is not None


async def test_double_add_returns_409(client, seed):
    await client.post(BASE, json=_body())
    res = await client.post(BASE, json=_body())
    assert res.status_code == 409
    data = res.json()
    assert data["ok"] is False
    assert data["error"]["code"] == "DOUBLE_ADD"


async def test_invalid_body_returns_400(client, seed):
    res = await client.post(BASE, json=_body(help_text=""))
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_missing_field_returns_400_with_details(client, seed):
    body = _body()
    del body["topic_id"]
    res = await client.post(BASE, json=body)
    assert res.status_code == 400
    fields = [d["field"] for d in res.json()["error"]["details"]]
    assert "body.topic_id" in fields


async def test_list_and_get_question(client, seed):
    qid = (await client.post(BASE, json=_body())).json()["question_id"]

    listed = await client.get(BASE)
    fetched = await client.get(f"{BASE}/{qid}")

    assert [q["id"] for q in listed.json()] == [qid]
    assert fetched.status_code == 200
    assert fetched.json()["student_first_name"] == "Ada"
    assert fetched.json()["queue_position"] == 0


async def test_unknown_question_returns_404(client, seed):
    res = await client.get(f"{BASE}/12345")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_question_of_other_course_returns_404(client, seed):
    qid = (await client.post(BASE, json=_body())).json()["question_id"]
    res = await client.get(f"/api/v1/courses/2/questions/{qid}")
    assert res.status_code == 404


async def test_answer_freeze_unfreeze_close_flow(client, seed):
    qid = (await client.post(BASE, json=_body())).json()["question_id"]

    answered = await client.post(f"{BASE}/answer", json={"user_id": 10})
    assert answered.json()["question_id"] == qid
    current = await client.get(f"{BASE}/cas/10/answering")
    assert current.json()["id"] == qid

    frozen = await client.post(f"{BASE}/answering/freeze", json={"user_id": 10})
    assert frozen.json()["affected"] == 1
    assert (await client.get(f"{BASE}/{qid}")).json()["is_frozen"] is True

    unfrozen = await client.post(f"{BASE}/mine/unfreeze", json={"user_id": 1})
    assert unfrozen.json()["affected"] == 1

    closed = await client.post(f"{BASE}/mine/close", json={"user_id": 1})
    assert closed.json()["affected"] == 1
    history = await client.get(f"{BASE}/closed", params={"n": 5})
    assert [q["id"] for q in history.json()] == [qid]
    assert history.json()[0]["off_reason"] == "self_kick"


async def test_second_answer_returns_409(client, seed):
    await client.post(BASE, json=_body(1))
    await client.post(BASE, json=_body(2))
    await client.post(f"{BASE}/answer", json={"user_id": 10})

    res = await client.post(f"{BASE}/answer", json={"user_id": 10})

    assert res.status_code == 409
    assert res.json()["error"]["code"] == "DOUBLE_ANSWER"


async def test_ca_close_with_kick_reason(client, seed):
    qid = (await client.post(BASE, json=_body())).json()["question_id"]
    await client.post(f"{BASE}/answer", json={"user_id": 10})

    res = await client.post(
        f"{BASE}/answering/close", json={"user_id": 10, "reason": "ca_kick"},
    )

    assert res.json()["affected"] == 1
    assert (await client.get(f"{BASE}/{qid}")).json()["off_reason"] == "ca_kick"


async def test_ca_close_as_self_kick_returns_400(client, seed):
    await client.post(BASE, json=_body())
    await client.post(f"{BASE}/answer", json={"user_id": 10})
    res = await client.post(
        f"{BASE}/answering/close", json={"user_id": 10, "reason": "self_kick"},
    )
    assert res.status_code == 400


async def test_patch_own_question(client, seed):
    qid = (await client.post(BASE, json=_body())).json()["question_id"]
    res = await client.patch(
        f"{BASE}/mine", json={"user_id": 1, "patch": {"help_text": "Fixed it"}},
    )
    assert res.json()["affected"] == 1
    assert (await client.get(f"{BASE}/{qid}")).json()["help_text"] == "Fixed it"


async def test_admin_freeze_and_close_by_id(client, seed):
    qid = (await client.post(BASE, json=_body())).json()["question_id"]

    frozen = await client.post(f"{BASE}/{qid}/freeze", json={"user_id": 20})
    closed = await client.post(
        f"{BASE}/{qid}/close", json={"user_id": 20, "reason": "normal"},
    )

    assert frozen.json()["affected"] == 1
    assert closed.json()["affected"] == 1
    assert (await client.get(f"{BASE}/students/1/open")).status_code == 404
    assert len((await client.get(f"{BASE}/students/1")).json()) == 1
