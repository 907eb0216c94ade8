"""End-to-end flows through the facade with a configured profile and mocked HTTP."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import responses

from migration_client import MigrationApiClient, load_settings
from migration_client.core.graphql import build_graphql_body

PROFILE = Path(__file__).resolve().parents[2] / "configs" / "profiles" / "test.yaml"
API = "https://api.github.com"
GRAPHQL = f"{API}/graphql"


@pytest.fixture
def client(clean_env: None, logger: MagicMock) -> MigrationApiClient:
    settings = load_settings(PROFILE, env={}, overrides={"token": "ghp_integration"})
    return MigrationApiClient(settings, logger=logger)


@pytest.mark.integration
@responses.activate
def test_start_migration_and_list_mannequins(client: MigrationApiClient) -> None:
    responses.add(responses.POST, GRAPHQL, json={"errors": [{"message": "Service currently unavailable"}]})
    responses.add(responses.POST, GRAPHQL, json={"data": {"startRepositoryMigration": {"repositoryMigration": {"id": "RM_1"}}}})
    responses.add(
        responses.POST,
        GRAPHQL,
        json={
            "data": {
                "node": {
                    "mannequins": {
                        "pageInfo": {"endCursor": "m-1", "hasNextPage": True},
                        "nodes": [{"login": "mona-old", "claimant": None}],
                    }
                }
            }
        },
    )
    responses.add(
        responses.POST,
        GRAPHQL,
        json={
            "data": {
                "node": {
                    "mannequins": {
                        "pageInfo": {"endCursor": "m-2", "hasNextPage": False},
                        "nodes": [{"login": "hubot-old", "claimant": {"login": "hubot"}}],
                    }
                }
            }
        },
    )

    started = client.post_graphql(
        GRAPHQL,
        build_graphql_body(
            "mutation startRepositoryMigration($sourceId: ID!) { startRepositoryMigration(input: {sourceId: $sourceId}) { repositoryMigration { id } } }",
            {"sourceId": "MS_1"},
            "startRepositoryMigration",
        ),
    )
    mannequins = list(
        client.post_graphql_with_pagination(
            GRAPHQL,
            build_graphql_body(
                "query($id: ID!, $first: Int, $after: String) { node(id: $id) { ... on Organization { mannequins(first: $first, after: $after) { pageInfo { endCursor hasNextPage } nodes { login claimant { login } } } } } }",
                {"id": "O_1"},
            ),
            "data.node.mannequins.nodes",
            "data.node.mannequins.pageInfo",
        )
    )

    assert started.data["startRepositoryMigration"]["repositoryMigration"]["id"] == "RM_1"
    assert [m["login"] for m in mannequins] == ["mona-old", "hubot-old"]
    assert len(responses.calls) == 4
    first_two = [json.loads(call.request.body) for call in responses.calls[:2]]
    assert first_two[0] == first_two[1]
    assert responses.calls[0].request.headers["GraphQL-Features"] == "import_api,mannequin_claiming"
    assert responses.calls[0].request.headers["Authorization"] == "Bearer ghp_integration"


@pytest.mark.integration
@responses.activate
def test_team_sync_after_creation(client: MigrationApiClient) -> None:
    teams_url = f"{API}/orgs/acme/teams"
    members_first = f"{API}/orgs/acme/teams/devs/members?per_page=100"
    members_second = f"{API}/orgs/acme/teams/devs/members?per_page=100&page=2"
    groups_url = f"{API}/orgs/acme/teams/devs/external-groups"

    responses.add(responses.GET, f"{teams_url}/devs", status=404)
    responses.add(responses.POST, teams_url, status=201, json={"slug": "devs"})
    responses.add(responses.GET, members_first, status=404)
    responses.add(
        responses.GET,
        members_first,
        json=[{"login": "mona"}],
        headers={"Link": f'<{members_second}>; rel="next"'},
    )
    responses.add(responses.GET, members_second, json=[{"login": "hubot"}])
    responses.add(responses.PATCH, groups_url, status=400)
    responses.add(responses.PATCH, groups_url, json={"group_id": 42})

    assert client.resource_exists(f"{teams_url}/devs") is False
    client.post(teams_url, {"name": "devs"})
    members = [member["login"] for member in client.get_all_pages("orgs/acme/teams/devs/members", retry_not_found=True)]
    linked = json.loads(client.patch(groups_url, {"group_id": 42}))

    assert members == ["mona", "hubot"]
    assert linked == {"group_id": 42}
    assert [call.request.method for call in responses.calls] == ["GET", "POST", "GET", "GET", "GET", "PATCH", "PATCH"]
