# tests/test_azdo_cli.py
"""
az queries: parsing, resilience to failed calls and malformed output.
"""

import logging

import pytest

from azdo_scanner.azdo_cli import AzdoCliService
from azdo_scanner.errors import ProjectListError
from azdo_scanner.policy import NO_POLICY_MESSAGE
from conftest import FakeProcessRunner, failed, ok

ORG = "https://dev.azure.com/myorg"

GROUPS = {
    "graphGroups": [
        {"displayName": "Contributors", "descriptor": "vssgp.contrib"},
        {"displayName": "Project Administrators", "descriptor": "vssgp.admins"},
        {"displayName": "Project Administrators", "descriptor": "vssgp.duplicate"},
    ]
}

MEMBERS = {
    "aad.one": {"displayName": "Ada", "mailAddress": "ada@example.com"},
    "aad.two": {"displayName": "Build Service"},
    "aad.three": {"displayName": "Grace", "mailAddress": "grace@example.com"},
    "aad.four": {"displayName": "Empty", "mailAddress": ""},
}

GOOD_POLICY = {
    "type": {"displayName": "Minimum number of reviewers"},
    "isEnabled": True,
    "settings": {"minimumApproverCount": 2, "blockLastPusherVote": True, "resetRejectionsOnSourcePush": True},
}


def test_list_projects_keeps_api_order():
    runner = FakeProcessRunner({"devops project list": ok({"value": [
        {"name": "Zulu"}, {"name": "alpha"}, {"id": "no-name"}, {"name": ""}, {"name": "Mike"}]})})
    assert AzdoCliService(runner).list_projects(ORG) == ["Zulu", "alpha", "Mike"]
    assert runner.commands() == [f"devops project list --org {ORG} --output json"]


def test_fetch_projects_raises_on_failure():
    runner = FakeProcessRunner({"devops project list": failed("TF400813: not authorized")})
    with pytest.raises(ProjectListError, match="Failed to list projects"):
        AzdoCliService(runner).fetch_projects(ORG)


def test_fetch_projects_raises_on_malformed_output():
    runner = FakeProcessRunner({"devops project list": ok("<html>")})
    with pytest.raises(ProjectListError, match="Failed to parse"):
        AzdoCliService(runner).fetch_projects(ORG)


def test_list_projects_swallows_failure(caplog):
    runner = FakeProcessRunner({"devops project list": ok({"count": 0})})
    with caplog.at_level(logging.WARNING):
        assert AzdoCliService(runner).list_projects(ORG) == []
    assert "Failed to parse project list" in caplog.text


def test_admin_emails_from_first_matching_group():
    runner = FakeProcessRunner({
        "devops security group list": ok(GROUPS),
        "devops security group membership list --id vssgp.admins": ok(MEMBERS),
    })
    emails = AzdoCliService(runner).list_admin_emails("Alpha", ORG)
    assert emails == ["ada@example.com", "grace@example.com"]
    assert runner.commands()[0] == f"devops security group list --project Alpha --org {ORG} --output json"


def test_admin_emails_empty_without_admin_group():
    runner = FakeProcessRunner({"devops security group list": ok({"graphGroups": [
        {"displayName": "Readers", "descriptor": "vssgp.readers"}]})})
    assert AzdoCliService(runner).list_admin_emails("Alpha", ORG) == []
    assert len(runner.calls) == 1


def test_admin_emails_empty_when_membership_fails():
    runner = FakeProcessRunner({
        "devops security group list": ok(GROUPS),
        "devops security group membership list": failed(),
    })
    assert AzdoCliService(runner).list_admin_emails("Alpha", ORG) == []


def test_admin_emails_warns_on_malformed_groups(caplog):
    runner = FakeProcessRunner({"devops security group list": ok({"value": []})})
    with caplog.at_level(logging.WARNING):
        assert AzdoCliService(runner).list_admin_emails("Alpha", ORG) == []
    assert "Could not read security groups of project 'Alpha'" in caplog.text


def test_repositories_are_graded_against_main_branch():
    runner = FakeProcessRunner({
        "repos list": ok([{"name": "api", "id": "r1"}, {"name": "web", "id": "r2"}]),
        "repos policy list --project Alpha --org https://dev.azure.com/myorg --repository-id r1": ok([GOOD_POLICY]),
        "repos policy list --project Alpha --org https://dev.azure.com/myorg --repository-id r2": ok([]),
    })
    repos = AzdoCliService(runner).list_repositories("Alpha", ORG)

    assert [r.name for r in repos] == ["api", "web"]
    assert [f.passed for f in repos[0].findings] == [True, True, True]
    assert repos[0].compliant
    assert [f.message for f in repos[1].findings] == [NO_POLICY_MESSAGE]
    assert not repos[1].compliant
    policy_calls = [c for c in runner.commands() if c.startswith("repos policy list")]
    assert all("--branch main" in c for c in policy_calls)


def test_repository_branch_is_configurable():
    runner = FakeProcessRunner({
        "repos list": ok([{"name": "api", "id": "r1"}]),
        "repos policy list": ok([GOOD_POLICY]),
    })
    AzdoCliService(runner, branch="develop").list_repositories("Alpha", ORG)
    assert "--branch develop" in runner.commands()[1]


def test_repository_without_id_or_readable_policies_has_no_policy(caplog):
    runner = FakeProcessRunner({
        "repos list": ok([{"name": "no-id"}, {"name": "broken", "id": "r2"}, {"name": "denied", "id": "r3"}]),
        "repos policy list --project Alpha --org https://dev.azure.com/myorg --repository-id r2": ok("{oops"),
        "repos policy list --project Alpha --org https://dev.azure.com/myorg --repository-id r3": failed(),
    })
    with caplog.at_level(logging.WARNING):
        repos = AzdoCliService(runner).list_repositories("Alpha", ORG)
    assert [[f.message for f in r.findings] for r in repos] == [[NO_POLICY_MESSAGE]] * 3
    assert "Could not read branch policies of repository r2" in caplog.text


def test_repositories_empty_on_failure():
    runner = FakeProcessRunner({"repos list": failed()})
    assert AzdoCliService(runner).list_repositories("Alpha", ORG) == []


def test_service_connections_projection():
    runner = FakeProcessRunner({"devops service-endpoint list": ok([
        {"id": "9159adab", "name": "azure-1", "type": "azurerm", "url": "https://management.azure.com/"},
        {"name": "github"},
    ])})
    conns = AzdoCliService(runner).list_service_connections("Alpha", ORG)
    assert [(c.name, c.type, c.id) for c in conns] == [("azure-1", "azurerm", "9159adab"), ("github", "", "")]


@pytest.mark.parametrize("response", [failed(), ok({"value": []}), ok("")])
def test_service_connections_empty_on_failure(response):
    runner = FakeProcessRunner({"devops service-endpoint list": response})
    assert AzdoCliService(runner).list_service_connections("Alpha", ORG) == []


def test_fetch_extensions_reads_both_scope_shapes():
    runner = FakeProcessRunner({"devops extension list": ok([
        {"publisherName": "ms", "extensionName": "build", "version": "1.0",
         "scopes": ["vso.build_execute", {"scopeValue": "vso.code"}, {"other": 1}]},
        {"extensionName": "orphan", "version": "2.0"},
    ])})
    exts = AzdoCliService(runner).fetch_extensions(ORG)
    assert exts[0].scopes == ("vso.build_execute", "vso.code")
    assert exts[1].publisher == "Unknown"
    assert exts[1].scopes == ()


def test_fetch_extensions_raises_on_failure():
    runner = FakeProcessRunner({"devops extension list": failed()})
    with pytest.raises(ValueError):
        AzdoCliService(runner).fetch_extensions(ORG)


def test_fetch_extensions_non_list_is_empty():
    runner = FakeProcessRunner({"devops extension list": ok({"value": []})})
    assert AzdoCliService(runner).fetch_extensions(ORG) == []
