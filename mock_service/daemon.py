"""
mock_service.daemon
-------------------
An in-memory imitation of the Abstract API using FastAPI.
Serves the organization, project, branch, commit, file, page, layer,
collection, changeset, comment and preview routes the client uses, from a
seeded store. Intended for local development and tests: tests hand
``TestClient(app)`` to ApiTransport, or run it with ``run`` and point
the client's apiUrl at it.
"""
import copy
import json
import logging
import socket
import sys
import uuid

import typer
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from common.app_setup import monkeypatch_print, print_and_log, print_error, setup_logging

logger = logging.getLogger(__name__)

# 1x1 transparent PNG
PREVIEW_PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d49484452000000010000000108060000001f15c489"
    "0000000d49444154789c6360000002000001e221bc330000000049454e44ae426082"
)


class AnnotationModel(BaseModel):
    x: float
    y: float
    width: float
    height: float


class CommentModel(BaseModel):
    projectId: str
    branchId: str
    commitSha: str
    body: str = Field(..., min_length=1)
    annotation: AnnotationModel | None = None
    fileId: str | None = None
    pageId: str | None = None
    layerId: str | None = None
    fileName: str | None = None
    pageName: str | None = None
    layerName: str | None = None


SEED = {
    "organizations": {
        "org-1": {"id": "org-1", "name": "Design Co"},
    },
    "projects": {
        "project-1": {"id": "project-1", "name": "Website", "organizationId": "org-1", "archived": False},
    },
    "branches": {
        "project-1": {
            "master": {"id": "master", "name": "master", "head": "sha-3", "status": "active", "userId": "user-1"},
            "feature": {"id": "feature", "name": "feature", "head": "sha-2", "status": "wip", "userId": "user-2"},
        },
    },
    # most recent first
    "commits": {
        ("project-1", "master"): [
            {"sha": "sha-3", "title": "Tweak header", "fileIds": ["file-1"], "layerIds": ["layer-1"]},
            {"sha": "sha-2", "title": "Add footer", "fileIds": ["file-1"], "layerIds": ["layer-2"]},
            {"sha": "sha-1", "title": "Initial", "fileIds": ["file-1", "file-2"], "layerIds": ["layer-1", "layer-2"]},
        ],
        ("project-1", "feature"): [
            {"sha": "sha-2", "title": "Add footer", "fileIds": ["file-1"], "layerIds": ["layer-2"]},
            {"sha": "sha-1", "title": "Initial", "fileIds": ["file-1", "file-2"], "layerIds": ["layer-1", "layer-2"]},
        ],
    },
    "files": [
        {"id": "file-1", "name": "Home.sketch"},
        {"id": "file-2", "name": "About.sketch"},
    ],
    "pages": {
        "file-1": [{"id": "page-1", "name": "Desktop", "fileId": "file-1"}],
        "file-2": [{"id": "page-2", "name": "Mobile", "fileId": "file-2"}],
    },
    "layers": {
        "file-1": [
            {"id": "layer-1", "name": "Header", "pageId": "page-1", "fileId": "file-1"},
            {"id": "layer-2", "name": "Footer", "pageId": "page-1", "fileId": "file-1"},
        ],
        "file-2": [
            {"id": "layer-3", "name": "Team", "pageId": "page-2", "fileId": "file-2"},
        ],
    },
    "collections": {
        "project-1": [
            {"id": "collection-1", "name": "Review", "branchId": "master"},
            {"id": "collection-2", "name": "Ideas", "branchId": "feature"},
        ],
    },
}

store: dict = {}
comments: dict[str, dict] = {}


def reset_store() -> None:
    """Restore the seeded data and drop every created comment."""
    store.clear()
    store.update(copy.deepcopy(SEED))
    comments.clear()


reset_store()
app = FastAPI()


def _project(project_id: str) -> dict:
    project = store["projects"].get(project_id)
    if not project:
        logger.warning(f"Project not found: {project_id}")
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _all_shas(project_id: str) -> set[str]:
    return {
        commit["sha"]
        for (pid, _), commits in store["commits"].items()
        if pid == project_id
        for commit in commits
    }


def _commit(project_id: str, sha: str) -> dict:
    _project(project_id)
    for (pid, _), commits in store["commits"].items():
        if pid != project_id:
            continue
        for commit in commits:
            if commit["sha"] == sha:
                return commit
    raise HTTPException(status_code=404, detail="Commit not found")


def _file(project_id: str, sha: str, file_id: str) -> dict:
    _commit(project_id, sha)
    for f in store["files"]:
        if f["id"] == file_id:
            return f
    raise HTTPException(status_code=404, detail="File not found")


def _layer(file_id: str, layer_id: str) -> dict:
    for layer in store["layers"].get(file_id, []):
        if layer["id"] == layer_id:
            return layer
    raise HTTPException(status_code=404, detail="Layer not found")


@app.get("/organizations")
def list_organizations():
    return {"data": list(store["organizations"].values())}


@app.get("/organizations/{organization_id}")
def get_organization(organization_id: str):
    organization = store["organizations"].get(organization_id)
    if not organization:
        raise HTTPException(status_code=404, detail="Organization not found")
    return {"data": organization}


@app.get("/projects")
def list_projects(organizationId: str | None = None, filter: str | None = None):
    logger.info(f"Listing projects. organizationId={organizationId!r} filter={filter!r}")
    projects = list(store["projects"].values())
    if organizationId:
        projects = [p for p in projects if p["organizationId"] == organizationId]
    if filter == "active":
        projects = [p for p in projects if not p["archived"]]
    elif filter == "archived":
        projects = [p for p in projects if p["archived"]]
    return {"data": projects}


@app.get("/projects/{project_id}")
def get_project(project_id: str):
    return {"data": _project(project_id)}


@app.get("/projects/{project_id}/branches")
def list_branches(project_id: str, filter: str | None = None):
    _project(project_id)
    branches = list(store["branches"].get(project_id, {}).values())
    if filter == "active":
        branches = [b for b in branches if b["status"] == "active"]
    return {"data": {"branches": branches}}


@app.get("/projects/{project_id}/branches/{branch_id}")
def get_branch(project_id: str, branch_id: str):
    _project(project_id)
    branch = store["branches"].get(project_id, {}).get(branch_id)
    if not branch:
        logger.warning(f"Branch not found: {project_id}/{branch_id}")
        raise HTTPException(status_code=404, detail="Branch not found")
    return branch


@app.get("/projects/{project_id}/branches/{branch_id}/commits")
def list_commits(
    project_id: str,
    branch_id: str,
    fileId: str | None = None,
    layerId: str | None = None,
    limit: int | None = None,
):
    get_branch(project_id, branch_id)
    commits = store["commits"].get((project_id, branch_id), [])
    if fileId:
        commits = [c for c in commits if fileId in c["fileIds"]]
    if layerId:
        commits = [c for c in commits if layerId in c["layerIds"]]
    if limit:
        commits = commits[:limit]
    return {"data": {"commits": commits}}


@app.get("/projects/{project_id}/commits/{sha}/changeset")
def get_changeset(project_id: str, sha: str):
    commit = _commit(project_id, sha)
    changes = [{"type": "layer", "layerId": layer_id} for layer_id in commit["layerIds"]]
    return {"changeset": {"id": f"changeset-{sha}", "sha": sha, "changes": changes}}


@app.get("/projects/{project_id}/commits/{sha}/files")
def list_files(project_id: str, sha: str):
    _commit(project_id, sha)
    return {"files": store["files"]}


@app.get("/projects/{project_id}/commits/{sha}/files/{file_id}/pages")
def list_pages(project_id: str, sha: str, file_id: str):
    _file(project_id, sha, file_id)
    return {"pages": store["pages"].get(file_id, [])}


@app.get("/projects/{project_id}/commits/{sha}/files/{file_id}/layers")
def list_layers(project_id: str, sha: str, file_id: str, pageId: str | None = None):
    _file(project_id, sha, file_id)
    layers = store["layers"].get(file_id, [])
    if pageId:
        layers = [layer for layer in layers if layer["pageId"] == pageId]
    return {"layers": layers}


@app.get("/projects/{project_id}/commits/{sha}/files/{file_id}/layers/{layer_id}")
def get_layer(project_id: str, sha: str, file_id: str, layer_id: str, request: Request):
    """Layer info on the api host, PNG preview on the previews host."""
    file = _file(project_id, sha, file_id)
    layer = _layer(file_id, layer_id)
    if (request.url.hostname or "").startswith("previews"):
        logger.info(f"Preview requested: {project_id}/{sha}/{file_id}/{layer_id}")
        return Response(content=PREVIEW_PNG, media_type="image/png")
    page = next(p for p in store["pages"][file_id] if p["id"] == layer["pageId"])
    return {"layer": layer, "page": page, "file": file}


@app.get("/projects/{project_id}/commits/{sha}/files/{file_id}/layers/{layer_id}/data")
def get_layer_data(project_id: str, sha: str, file_id: str, layer_id: str):
    _file(project_id, sha, file_id)
    layer = _layer(file_id, layer_id)
    return {
        "projectId": project_id,
        "sha": sha,
        "fileId": file_id,
        "layerId": layer_id,
        "layers": {layer_id: {"properties": {"name": layer["name"], "width": 320, "height": 64}}},
    }


@app.get("/projects/{project_id}/collections")
def list_collections(project_id: str, branchId: str | None = None):
    _project(project_id)
    collections = store["collections"].get(project_id, [])
    if branchId:
        collections = [c for c in collections if c["branchId"] == branchId]
    return {"data": {"collections": collections}}


@app.get("/projects/{project_id}/collections/{collection_id}")
def get_collection(project_id: str, collection_id: str):
    _project(project_id)
    for collection in store["collections"].get(project_id, []):
        if collection["id"] == collection_id:
            return {"data": collection}
    raise HTTPException(status_code=404, detail="Collection not found")


@app.post("/comments", status_code=201)
def create_comment(comment: CommentModel):
    _project(comment.projectId)
    if comment.commitSha not in _all_shas(comment.projectId):
        logger.warning(f"Comment on unknown commit: {comment.commitSha!r}")
        raise HTTPException(status_code=422, detail="Unknown commitSha")
    comment_id = str(uuid.uuid4())
    created = {"id": comment_id, **comment.model_dump(exclude_none=True)}
    comments[comment_id] = created
    logger.info(f"Created comment: {comment_id} on {comment.projectId}/{comment.branchId}@{comment.commitSha}")
    return created


app_cli = typer.Typer()


@app_cli.command()
def run(port: int = typer.Option(None, help="Port to run the server on (auto if not set)")):
    """Run the FastAPI app using Uvicorn on localhost, reporting the actual port used."""
    setup_logging(app_name="abstract_mock", daemon=True, extra_loggers=("mock_service",))
    if port is None or port == 0:
        # Bind to port 0 to get a free port, then close and reuse
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(('127.0.0.1', 0))
            port = s.getsockname()[1]
        logger.info(f"Selected port: {port}")
        print(json.dumps({"event": "port_selected", "port": port}), flush=True)
    else:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind(('127.0.0.1', port))
            except OSError:
                print_error(f"ERROR: Port {port} is already in use.")
                sys.exit(98)  # 98 = EADDRINUSE
        logger.info(f"Using port: {port}")
        print(json.dumps({"event": "port_used", "port": port}), flush=True)
    monkeypatch_print()
    config = uvicorn.Config(app, host="127.0.0.1", port=port, log_level="info")
    server = uvicorn.Server(config)
    print_and_log(f"Starting mock Abstract API on http://127.0.0.1:{port}")
    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt in main thread")
    logger.info("Server stopped, exiting process")


if __name__ == "__main__":
    app_cli()
