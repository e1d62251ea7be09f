"""
Unit tests for the OpenAPI import adapter.
"""

import json

import pytest

from reqtree.collection.openapi import (
    build_collection,
    build_literals,
    load_document,
    parse_document,
)
from reqtree.collection.tree import ROOT_ID, TreeStore
from reqtree.core.exceptions import DocumentError
from reqtree.core.models import Header, Method, Param
from reqtree.executor.engine import build_request

PETSTORE_YAML = """
openapi: 3.0.0
info:
  title: Petstore
  version: 1.0.0
servers:
  - url: https://petstore.example.com/v1/
  - url: http://localhost:8080
paths:
  /pets:
    get:
      parameters:
        - name: limit
          in: query
          required: true
          schema:
            type: integer
            example: 20
        - name: tag
          in: query
          schema:
            type: string
        - $ref: '#/components/parameters/TraceId'
    post:
      requestBody:
        content:
          application/json:
            example:
              name: Rex
              tag: dog
  /pets/{petId}:
    parameters:
      - name: petId
        in: path
        required: true
    delete:
      parameters:
        - name: petId
          in: path
          example: 42
    get: {}
components:
  parameters:
    TraceId:
      name: X-Trace-Id
      in: header
      required: true
      example: abc-123
"""


@pytest.fixture
def petstore():
    return parse_document(PETSTORE_YAML)


class TestParseDocument:
    """Tests for document parsing."""

    def test_yaml(self, petstore):
        assert petstore["info"]["title"] == "Petstore"

    def test_json(self):
        document = parse_document(json.dumps({"openapi": "3.0.0", "paths": {}}))
        assert document["paths"] == {}

    def test_invalid_yaml(self):
        with pytest.raises(DocumentError):
            parse_document("paths: [unclosed")

    def test_non_mapping(self):
        with pytest.raises(DocumentError):
            parse_document("- just\n- a list\n")

    def test_load_document(self, temp_dir):
        path = temp_dir / "api.yaml"
        path.write_text(PETSTORE_YAML, encoding="utf-8")

        assert load_document(path)["openapi"] == "3.0.0"

    def test_load_missing_document(self, temp_dir):
        with pytest.raises(DocumentError):
            load_document(temp_dir / "missing.yaml")


class TestBuildCollection:
    """Tests for converting documents to tree literals."""

    def test_structure(self, petstore):
        collection = build_collection(petstore)

        assert collection.label == "Petstore"
        assert collection.expanded
        assert [server.label for server in collection.children] == [
            "https://petstore.example.com/v1/",
            "http://localhost:8080",
        ]
        requests = collection.children[0].children
        assert [request.label for request in requests] == [
            "GET /pets",
            "POST /pets",
            "GET /pets/{petId}",
            "DELETE /pets/{petId}",
        ]

    def test_query_parameters(self, petstore):
        get_pets = build_collection(petstore).children[0].children[0].content

        assert get_pets.method is Method.GET
        assert get_pets.url == "https://petstore.example.com/v1/pets?limit=20"
        assert get_pets.params == [
            Param(enable=True, key="limit", value="20"),
            Param(enable=False, key="tag", value=""),
            Param(),
        ]
        assert get_pets.body == ""

    def test_header_parameters_from_reference(self, petstore):
        get_pets = build_collection(petstore).children[0].children[0].content

        assert get_pets.headers[-1] == Header(key="X-Trace-Id", value="abc-123")
        assert get_pets.headers[0] == Header(key="Accept", value="*/*")

    def test_body_example(self, petstore):
        post_pets = build_collection(petstore).children[0].children[1].content

        assert post_pets.method is Method.POST
        assert json.loads(post_pets.body) == {"name": "Rex", "tag": "dog"}
        assert post_pets.body.startswith("{\n  ")

    def test_path_parameters(self, petstore):
        requests = build_collection(petstore).children[0].children
        get_pet, delete_pet = requests[2].content, requests[3].content

        assert requests[0].content.path_params == []
        assert get_pet.path_params == [Param(key="petId", value="")]
        assert delete_pet.path_params == [Param(key="petId", value="42")]
        assert delete_pet.url == "https://petstore.example.com/v1/pets/{petId}"
        assert build_request(delete_pet).url == "https://petstore.example.com/v1/pets/42"

    def test_second_server(self, petstore):
        request = build_collection(petstore).children[1].children[2].content
        assert request.url == "http://localhost:8080/pets/{petId}"

    def test_default_server_and_title(self):
        collection = build_collection({"paths": {"/health": {"get": {}}}})

        assert collection.label == "OpenAPI"
        assert collection.children[0].label == "/"
        assert collection.children[0].children[0].content.url == "/health"

    def test_title_override(self, petstore):
        assert build_collection(petstore, title="Pets").label == "Pets"

    def test_invalid_paths(self):
        with pytest.raises(DocumentError):
            build_collection({"paths": ["/a"]})

    def test_import_into_tree(self, petstore, tree_store: TreeStore):
        tree_store.import_nodes(ROOT_ID, build_literals(petstore))

        ids = [record.id for record in tree_store.state.iter_preorder()]
        assert ids == list(range(len(ids)))
        # root, document, 2 servers, 4 requests per server
        assert len(ids) == 1 + 1 + 2 + 8
