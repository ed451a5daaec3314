from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Sequence

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from codeseek.application.change_detector import format_change_message
from codeseek.application.documentation import DocumentationGenerator
from codeseek.application.insights import ProjectInsights
from codeseek.application.search_service import CodebaseSearchService
from codeseek.config import Settings
from codeseek.container import build_service
from codeseek.domain.models import SearchOptions


# ── API Models ───────────────────────────────────────────────────────────────
class SearchRequest(BaseModel):
    query: str
    boost_recent: bool = False
    boost_frequent: bool = False
    filter_author: Optional[str] = None
    recent_days: Optional[int] = None


class SearchResponse(BaseModel):
    query: str
    answer: str
    sources: List[dict]


class DocumentResponse(BaseModel):
    project: str
    content: str


class ChangesResponse(BaseModel):
    baseline: bool
    new_files: int = 0
    modified_files: int = 0
    deleted_files: int = 0
    total_changes: int = 0
    summary: str = ""


# ── App Factory ──────────────────────────────────────────────────────────────
def create_app(
    service: CodebaseSearchService,
    root_dir: str,
    project_name: str,
    recent_days: int = 30,
    cors_origins: Sequence[str] = (),
) -> FastAPI:
    app = FastAPI(
        title="codeseek API",
        description="Local TF-IDF code search with answer synthesis.",
        version="1.0.0",
    )
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    documents = DocumentationGenerator(service.store, service.answer_provider)
    insights = ProjectInsights(service.store)

    @app.get("/status")
    def get_status():
        """Readiness and index statistics for the served project."""
        generation = service.current_generation(project_name)
        fragments = service.indexed_fragment_count(project_name)
        return {
            "project": project_name,
            "root": root_dir,
            "is_ready": fragments > 0,
            "fragments_indexed": fragments,
            "generation": generation.number if generation else None,
            "answer_provider": service.answer_provider_name,
        }

    @app.post("/ingest")
    def trigger_ingest():
        """Full, destructive re-index of the project root."""
        try:
            summary = service.ingest_corpus(root_dir, project_name)
        except Exception as e:
            print(f"[API] Ingestion failed: {e}")
            raise HTTPException(status_code=500, detail=f"Ingestion failed: {str(e)}")
        return {
            "message": "Indexing complete.",
            "files_processed": summary.files_processed,
            "fragments_stored": summary.fragments_stored,
            "vocabulary_size": summary.vocabulary_size,
            "generation": summary.generation,
        }

    @app.get("/changes", response_model=ChangesResponse)
    def get_changes():
        report = service.detect_changes(root_dir, project_name)
        if report is None:
            return ChangesResponse(baseline=False)
        return ChangesResponse(
            baseline=True,
            new_files=report.new_files,
            modified_files=report.modified_files,
            deleted_files=report.deleted_files,
            total_changes=report.total_changes,
            summary=format_change_message(report),
        )

    @app.post("/search", response_model=SearchResponse)
    def search(request: SearchRequest):
        if service.indexed_fragment_count(project_name) == 0:
            raise HTTPException(
                status_code=503,
                detail="Project is not indexed. POST /ingest first.",
            )

        options = SearchOptions(
            boost_recent=request.boost_recent,
            boost_frequent=request.boost_frequent,
            filter_author=request.filter_author,
            recent_days=request.recent_days if request.recent_days is not None else recent_days,
        )
        try:
            outcome = service.search(request.query, project_name, options)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return SearchResponse(
            query=request.query,
            answer=outcome.answer,
            sources=[r.to_dict() for r in outcome.sources],
        )

    @app.post("/generate/readme", response_model=DocumentResponse)
    def generate_readme():
        return DocumentResponse(project=project_name, content=_draft(documents.readme))

    @app.post("/generate/agents", response_model=DocumentResponse)
    def generate_agents_md():
        return DocumentResponse(project=project_name, content=_draft(documents.agents_md))

    def _draft(generate) -> str:
        try:
            return generate(project_name, root_dir)
        except ValueError as e:
            raise HTTPException(status_code=503, detail=str(e))
        except Exception as e:
            print(f"[API] Document generation failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/authors")
    def list_authors():
        return {"authors": [asdict(a) for a in insights.authors(project_name)]}

    @app.get("/authors/{email}/files")
    def list_author_files(email: str):
        return {"email": email, "files": [f.to_dict() for f in insights.author_files(project_name, email)]}

    @app.get("/recent")
    def list_recent_files(days: int = Query(7, ge=1)):
        files = insights.recently_modified(project_name, days=days)
        return {"days": days, "files": [f.to_dict() for f in files]}

    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    root = str(Path(".").resolve())
    app = create_app(
        build_service(settings, root),
        root,
        Path(root).name,
        recent_days=settings.recent_days,
        cors_origins=settings.cors_origins,
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
