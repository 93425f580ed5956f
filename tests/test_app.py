from __future__ import annotations

import io
import json

import pytest

from app import app
from tests.conftest import assessment_test_xml, choice_item


@pytest.fixture
def client():
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "healthy"}


def test_parse(client, qti21_choice_xml):
    response = client.post("/parse", json={"content": qti21_choice_xml})
    data = response.get_json()

    assert response.status_code == 200
    assert data["version"] == "2.1"
    assert data["success"] is True
    assert data["items"][0]["correct_response"] == "B"


def test_parse_uploaded_file(client, qti21_choice_xml):
    response = client.post(
        "/parse",
        data={"file": (io.BytesIO(qti21_choice_xml.encode("utf-8")), "item.xml"), "version": "3.0"},
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    assert response.get_json()["version"] == "3.0"


def test_parse_requires_content(client):
    response = client.post("/parse", json={})
    assert response.status_code == 400
    assert response.get_json() == {"error": "No content provided"}


def test_parse_unknown_version_is_bad_request(client, qti21_choice_xml):
    response = client.post("/parse", json={"content": qti21_choice_xml, "version": "4.0"})
    assert response.status_code == 400
    assert "No parser available for QTI version 4.0" in response.get_json()["error"]


def test_format(client):
    response = client.post("/format", json={"content": "<a><b>text</b></a>"})
    assert response.get_json()["content"] == "<a>\n  <b>text</b>\n</a>"


def test_convert_both_directions(client, qti21_choice_xml):
    to_json = client.post("/convert", json={"content": qti21_choice_xml}).get_json()
    assert to_json["format"] == "json"
    assert json.loads(to_json["content"])["identifier"] == "capital"

    back = client.post("/convert", json={"content": to_json["content"]}).get_json()
    assert back["format"] == "xml"
    assert 'identifier="capital"' in back["content"]


def test_convert_error_is_bad_request(client):
    response = client.post("/convert", json={"content": '{"@type": "nothing"}'})
    assert response.status_code == 400
    assert response.get_json()["error"].startswith("Invalid JSON format")


def test_insert_item_from_type(client):
    response = client.post("/items/insert", json={"content": assessment_test_xml("A"), "item_type": "slider", "version": "2.1"})
    content = response.get_json()["content"]
    parsed = client.post("/parse", json={"content": content, "version": "2.1"}).get_json()

    assert [item["type"] for item in parsed["items"]] == ["choice", "slider"]


def test_insert_requires_item(client):
    response = client.post("/items/insert", json={"content": ""})
    assert response.status_code == 400


@pytest.mark.parametrize("index,expected", [("0", ["A", "new", "B"]), (None, ["A", "B", "new"])])
def test_insert_after_index_accepts_integer_strings_and_null(client, index, expected):
    payload = {"content": assessment_test_xml("A", "B"), "item_xml": choice_item("new"), "insert_after_index": index}
    content = client.post("/items/insert", json=payload).get_json()["content"]
    parsed = client.post("/parse", json={"content": content, "version": "2.1"}).get_json()

    assert [item["id"] for item in parsed["items"]] == expected


def test_insert_rejects_non_integer_index(client):
    payload = {"content": assessment_test_xml("A"), "item_xml": choice_item("new"), "insert_after_index": "after"}
    response = client.post("/items/insert", json=payload)

    assert response.status_code == 400
    assert response.get_json()["error"] == "insert_after_index must be an integer"


def test_reorder(client):
    response = client.post(
        "/items/reorder",
        json={"content": assessment_test_xml("A", "B", "C"), "from_index": 0, "to_index": 2, "version": "2.1"},
    )
    parsed = client.post("/parse", json={"content": response.get_json()["content"], "version": "2.1"}).get_json()
    assert [item["id"] for item in parsed["items"]] == ["B", "C", "A"]


def test_reorder_validates_indices(client):
    response = client.post("/items/reorder", json={"content": assessment_test_xml("A"), "from_index": "x", "to_index": 0})
    assert response.status_code == 400


def test_correct_response(client):
    response = client.post(
        "/items/correct-response",
        json={"content": assessment_test_xml("A", "B"), "item_id": "A", "correct_response": ["A", "B"], "version": "2.1"},
    )
    assert 'cardinality="multiple"' in response.get_json()["content"]


def test_score(client):
    response = client.post(
        "/score",
        json={"content": assessment_test_xml("A", "B"), "responses": {"A": "A", "B": "B"}, "version": "2.1"},
    )
    data = response.get_json()

    assert [score["is_correct"] for score in data["scores"]] == [True, False]
    assert data["total"]["total_score"] == 1.0
    assert data["total"]["percentage_score"] == 50.0


def test_score_requires_responses(client, qti21_choice_xml):
    response = client.post("/score", json={"content": qti21_choice_xml})
    assert response.status_code == 400


def test_templates(client):
    xml = client.get("/templates/2.1/choice").get_json()
    assert xml["version"] == "2.1"
    assert "imsqti_v2p1" in xml["content"]

    as_json = client.get("/templates/3.0/order?format=json").get_json()
    assert json.loads(as_json["content"])["@type"] == "assessmentItem"


def test_template_errors(client):
    assert client.get("/templates/2.1/choice?format=json").status_code == 400
    assert client.get("/templates/9.9/choice").status_code == 400
    assert client.get("/templates/2.1/drawing").status_code == 404


def test_unknown_route_is_404(client):
    assert client.get("/nowhere").status_code == 404
