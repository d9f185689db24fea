"""Static catalog of the n8n operations exposed as tools.

The table is built once at import time and exposed read-only; operations
are looked up by name and never mutated at runtime.
"""

from types import MappingProxyType
from typing import Dict, Mapping

from .models import APIParameter, HTTPMethod, Operation, ParamLocation, ParamType

MAX_PAGE_SIZE = 1000

GLOBAL_ROLES = ("global:admin", "global:member")
EXECUTION_STATUSES = ("error", "success", "waiting")


def path(name: str, type: ParamType = ParamType.STRING, description: str = "") -> APIParameter:
    return APIParameter(
        name, type, ParamLocation.PATH, required=True, description=description,
        non_empty=type is ParamType.STRING,
    )


def query(name: str, type: ParamType, description: str = "", **constraints) -> APIParameter:
    return APIParameter(name, type, ParamLocation.QUERY, description=description, **constraints)


def body(name: str, type: ParamType, required: bool = False, description: str = "", **constraints) -> APIParameter:
    return APIParameter(name, type, ParamLocation.BODY, required=required, description=description, **constraints)


def field(name: str, type: ParamType, required: bool = False, **constraints) -> APIParameter:
    """Field of an object nested inside an array parameter"""
    return APIParameter(name, type, ParamLocation.BODY, required=required, **constraints)


PAGINATION = (
    query("limit", ParamType.INTEGER, "Maximum number of items to return",
          minimum=1, maximum=MAX_PAGE_SIZE),
    query("cursor", ParamType.STRING, "Pagination cursor from a previous response", non_empty=True),
)

WORKFLOW_BODY = (
    body("name", ParamType.STRING, required=True, description="Workflow name", non_empty=True),
    body("nodes", ParamType.ARRAY, required=True, description="Workflow node definitions", min_items=1),
    body("connections", ParamType.OBJECT, required=True, description="Connections between nodes"),
    body("settings", ParamType.OBJECT, required=True, description="Workflow settings"),
)

_OPERATIONS = (
    # --- Users ---
    Operation(
        "getUsers", HTTPMethod.GET, "/users", "Retrieve all users",
        (
            *PAGINATION,
            query("includeRole", ParamType.BOOLEAN, "Include the user's role"),
            query("projectId", ParamType.STRING, "Only users of this project", non_empty=True),
        ),
    ),
    Operation(
        "createUsers", HTTPMethod.POST, "/users", "Create one or more users",
        (
            body("users", ParamType.ARRAY, required=True, description="Users to create", min_items=1,
                 items=(
                     field("email", ParamType.STRING, required=True, non_empty=True),
                     field("role", ParamType.STRING, choices=GLOBAL_ROLES),
                 )),
        ),
        unwrap_body="users",
    ),
    Operation(
        "getUser", HTTPMethod.GET, "/users/{id}", "Get a user by ID or email",
        (path("id"), query("includeRole", ParamType.BOOLEAN, "Include the user's role")),
    ),
    Operation("deleteUser", HTTPMethod.DELETE, "/users/{id}", "Delete a user", (path("id"),)),
    Operation(
        "changeRole", HTTPMethod.PATCH, "/users/{id}/role", "Change a user's global role",
        (path("id"), body("newRoleName", ParamType.STRING, required=True, choices=GLOBAL_ROLES)),
    ),

    # --- Projects ---
    Operation("getProjects", HTTPMethod.GET, "/projects", "Retrieve projects", PAGINATION),
    Operation(
        "createProject", HTTPMethod.POST, "/projects", "Create a project",
        (body("name", ParamType.STRING, required=True, non_empty=True),),
    ),
    Operation("deleteProject", HTTPMethod.DELETE, "/projects/{projectId}", "Delete a project",
              (path("projectId"),)),
    Operation(
        "updateProject", HTTPMethod.PUT, "/projects/{projectId}", "Rename a project",
        (path("projectId"), body("name", ParamType.STRING, required=True, non_empty=True)),
    ),
    Operation(
        "addUsersToProject", HTTPMethod.POST, "/projects/{projectId}/users", "Add users to a project",
        (
            path("projectId"),
            body("relations", ParamType.ARRAY, required=True, description="User/role pairs", min_items=1,
                 items=(
                     field("projectUserId", ParamType.STRING, required=True, upstream_name="userId",
                           non_empty=True),
                     field("role", ParamType.STRING, required=True, non_empty=True),
                 )),
        ),
    ),
    Operation(
        "deleteUserFromProject", HTTPMethod.DELETE, "/projects/{projectId}/users/{projectUserId}",
        "Remove a user from a project",
        (path("projectId"), path("projectUserId")),
    ),
    Operation(
        "changeUserRoleInProject", HTTPMethod.PATCH, "/projects/{projectId}/users/{projectUserId}",
        "Change a user's role in a project",
        (path("projectId"), path("projectUserId"),
         body("role", ParamType.STRING, required=True, non_empty=True)),
    ),

    # --- Workflows ---
    Operation(
        "getWorkflows", HTTPMethod.GET, "/workflows", "Retrieve workflows",
        (
            query("active", ParamType.BOOLEAN, "Filter by activation state"),
            query("tags", ParamType.STRING, "Comma-separated tag names"),
            query("name", ParamType.STRING, "Filter by workflow name"),
            query("projectId", ParamType.STRING, "Filter by project", non_empty=True),
            query("excludePinnedData", ParamType.BOOLEAN, "Leave pinned data out of the response"),
            *PAGINATION,
        ),
    ),
    Operation("createWorkflow", HTTPMethod.POST, "/workflows", "Create a workflow", WORKFLOW_BODY),
    Operation(
        "getWorkflow", HTTPMethod.GET, "/workflows/{id}", "Retrieve a workflow",
        (path("id", description="Workflow ID"),
         query("excludePinnedData", ParamType.BOOLEAN, "Leave pinned data out of the response")),
    ),
    Operation("deleteWorkflow", HTTPMethod.DELETE, "/workflows/{id}", "Delete a workflow", (path("id"),)),
    Operation("updateWorkflow", HTTPMethod.PUT, "/workflows/{id}", "Update a workflow",
              (path("id"), *WORKFLOW_BODY)),
    Operation("activateWorkflow", HTTPMethod.POST, "/workflows/{id}/activate", "Activate a workflow",
              (path("id"),)),
    Operation("deactivateWorkflow", HTTPMethod.POST, "/workflows/{id}/deactivate", "Deactivate a workflow",
              (path("id"),)),
    Operation(
        "transferWorkflow", HTTPMethod.PUT, "/workflows/{id}/transfer", "Move a workflow to another project",
        (path("id"), body("destinationProjectId", ParamType.STRING, required=True, non_empty=True)),
    ),
    Operation("getWorkflowTags", HTTPMethod.GET, "/workflows/{id}/tags", "Get the tags of a workflow",
              (path("id"),)),
    Operation(
        "updateWorkflowTags", HTTPMethod.PUT, "/workflows/{id}/tags", "Replace the tags of a workflow",
        (
            path("id"),
            body("tags", ParamType.ARRAY, required=True, description="Tag references",
                 items=(field("id", ParamType.STRING, required=True, non_empty=True),)),
        ),
    ),

    # --- Executions ---
    Operation(
        "getExecutions", HTTPMethod.GET, "/executions", "Retrieve executions",
        (
            query("includeData", ParamType.BOOLEAN, "Include execution data"),
            query("status", ParamType.STRING, "Filter by status", choices=EXECUTION_STATUSES),
            query("workflowId", ParamType.STRING, "Filter by workflow", non_empty=True),
            query("projectId", ParamType.STRING, "Filter by project", non_empty=True),
            *PAGINATION,
        ),
    ),
    Operation(
        "getExecution", HTTPMethod.GET, "/executions/{id}", "Retrieve an execution",
        (path("id", ParamType.INTEGER), query("includeData", ParamType.BOOLEAN, "Include execution data")),
    ),
    Operation("deleteExecution", HTTPMethod.DELETE, "/executions/{id}", "Delete an execution",
              (path("id", ParamType.INTEGER),)),

    # --- Credentials ---
    Operation(
        "createCredential", HTTPMethod.POST, "/credentials", "Create a credential",
        (
            body("name", ParamType.STRING, required=True, non_empty=True),
            body("type", ParamType.STRING, required=True, non_empty=True),
            body("data", ParamType.OBJECT, required=True),
        ),
    ),
    Operation("deleteCredential", HTTPMethod.DELETE, "/credentials/{id}", "Delete a credential",
              (path("id"),)),
    Operation(
        "transferCredential", HTTPMethod.PUT, "/credentials/{id}/transfer", "Move a credential to another project",
        (path("id"), body("destinationProjectId", ParamType.STRING, required=True, non_empty=True)),
    ),
    Operation(
        "getCredentialType", HTTPMethod.GET, "/credentials/schema/{credentialTypeName}",
        "Show the data schema of a credential type",
        (path("credentialTypeName"),),
    ),

    # --- Tags ---
    Operation("createTag", HTTPMethod.POST, "/tags", "Create a tag",
              (body("name", ParamType.STRING, required=True, non_empty=True),)),
    Operation("getTags", HTTPMethod.GET, "/tags", "Retrieve tags", PAGINATION),
    Operation("getTag", HTTPMethod.GET, "/tags/{id}", "Retrieve a tag", (path("id"),)),
    Operation("deleteTag", HTTPMethod.DELETE, "/tags/{id}", "Delete a tag", (path("id"),)),
    Operation("updateTag", HTTPMethod.PUT, "/tags/{id}", "Rename a tag",
              (path("id"), body("name", ParamType.STRING, required=True, non_empty=True))),

    # --- Instance ---
    Operation("generateAudit", HTTPMethod.POST, "/audit", "Generate a security audit",
              (body("additionalOptions", ParamType.OBJECT),)),
    Operation(
        "pull", HTTPMethod.POST, "/source-control/pull", "Pull changes from the remote repository",
        (body("force", ParamType.BOOLEAN), body("variables", ParamType.OBJECT)),
    ),

    # --- Variables ---
    Operation(
        "createVariable", HTTPMethod.POST, "/variables", "Create a variable",
        (body("key", ParamType.STRING, required=True, non_empty=True),
         body("value", ParamType.STRING, required=True)),
    ),
    Operation("getVariables", HTTPMethod.GET, "/variables", "Retrieve variables", PAGINATION),
    Operation("deleteVariable", HTTPMethod.DELETE, "/variables/{id}", "Delete a variable", (path("id"),)),
    Operation(
        "updateVariable", HTTPMethod.PUT, "/variables/{id}", "Update a variable",
        (path("id"),
         body("key", ParamType.STRING, required=True, non_empty=True),
         body("value", ParamType.STRING, required=True)),
    ),
)


def _index(operations) -> Mapping[str, Operation]:
    table: Dict[str, Operation] = {}
    for operation in operations:
        if operation.name in table:
            raise ValueError(f"Operation '{operation.name}' already exists")
        table[operation.name] = operation
    return MappingProxyType(table)


OPERATIONS: Mapping[str, Operation] = _index(_OPERATIONS)


__all__ = [
    "MAX_PAGE_SIZE",
    "OPERATIONS",
]
