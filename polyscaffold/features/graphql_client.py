from __future__ import annotations

from typing import Any

from featurekit.activation import And, AnswerMap, Custom, Equals, IncludesValue, Or
from featurekit.feature_types import DependencyRequest, Feature, Stage, TemplateInstruction

CLIENT_PACKAGES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "apollo-client": (
        ("@apollo/client", "graphql"),
        (
            "@graphql-codegen/cli",
            "@graphql-codegen/typescript",
            "@graphql-codegen/typescript-operations",
            "@graphql-codegen/typescript-react-apollo",
        ),
    ),
    "urql": (
        ("urql", "graphql"),
        (
            "@graphql-codegen/cli",
            "@graphql-codegen/typescript",
            "@graphql-codegen/typescript-operations",
            "@graphql-codegen/typescript-urql",
        ),
    ),
    "graphql-request": (
        ("graphql-request", "graphql", "@tanstack/react-query"),
        ("@graphql-codegen/cli", "@graphql-codegen/typescript", "@graphql-codegen/typescript-operations"),
    ),
}


def _client_selected(value: Any, answers: AnswerMap) -> bool:
    return isinstance(value, str) and value not in ("", "none")


def _client_stage(client: str) -> Stage:
    runtime, dev = CLIENT_PACKAGES[client]
    return Stage(
        name=f"setup-{client}",
        activated_by=Equals("graphqlClient", client),
        dependencies=(
            DependencyRequest(name=runtime, workspace="{{clientWorkspace}}"),
            DependencyRequest(name=dev, workspace="{{clientWorkspace}}", type="devDependencies"),
        ),
        templates=(
            TemplateInstruction(
                source=f"graphql_client/{client}",
                destination="{{clientWorkspace}}",
                context={"clientType": client},
            ),
        ),
    )


FEATURE = Feature(
    id="graphql-client",
    name="GraphQL Client",
    description="GraphQL client setup with Apollo Client, URQL or GraphQL Request",
    depends_on=("vite",),
    activated_by=And(
        Or(
            IncludesValue("projectWorkspaces", "react-webapp"),
            IncludesValue("projectWorkspaces", "mobile-app"),
        ),
        IncludesValue("projectWorkspaces", "graphql-server"),
        Custom("graphqlClient", _client_selected, label="graphqlClient is set and not 'none'"),
    ),
    configuration=(
        {
            "id": "graphqlEndpoint",
            "type": "text",
            "title": "GraphQL API Endpoint",
            "defaultValue": "http://localhost:4000/graphql",
        },
        {
            "id": "clientWorkspace",
            "type": "text",
            "title": "Workspace that hosts the client",
            "defaultValue": "web",
        },
    ),
    stages=tuple(_client_stage(client) for client in CLIENT_PACKAGES),
)
