"""
flowgraph-api Application Package

Directory Structure:
├── routers/           # FastAPI route handlers
├── schemas/           # Pydantic models for API requests/responses
│   └── api_schemas.py # HTTP request/response structures
├── domain/            # Graph model, node catalog, validator, scheduler, layout
├── application/       # Builder session, execution monitor, background tasks
├── serialization/     # Backend transform, flatten projection, export/import
├── services/ai/       # LLM-backed graph synthesis
├── infrastructure/    # Backend workflow/execution API clients
├── storage/           # Last-known-good workflow store
└── config.py          # Application configuration

Graph Types Clarification:
1. **Graph model** (flowgraph.domain.graph): the canonical in-memory workflow
2. **Backend shape** (flowgraph.serialization.transform): flat `data` bag nodes
   exchanged with the workflow engine and written to export files
3. **API Schemas** (flowgraph.schemas.api_schemas): HTTP request/response bodies

The workflow engine that actually executes graphs is an external service; this
package only builds, validates, lays out, serializes and observes graphs.
"""
