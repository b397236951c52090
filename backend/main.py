"""
FastAPI backend service for statement parsing and template management.
"""
from fastapi import Body, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from typing import Any, Dict, Optional

from statement_parser import StatementDocument, StatementParserService, TemplateManager

app = FastAPI(title="Statement Parser API", version="1.0.0")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],  # Vite and other dev servers
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

service = StatementParserService()
manager = TemplateManager(service)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Statement Parser API", "status": "healthy"}


@app.post("/parse")
async def parse_statement(file: UploadFile = File(...), template: str = Form(...),
                          password: Optional[str] = Form(None)):
    """
    Parse an uploaded statement with a stored template.

    Args:
        file: Uploaded PDF or CSV file
        template: Template ID to use
        password: Password for encrypted PDFs

    Returns:
        Parse result as JSON; unsuccessful parses return 422
    """
    document = StatementDocument(filename=file.filename or "", data=await file.read(), password=password)
    logger.info(f"Processing statement: {document.filename}")

    result = service.parse_statement(document, template)
    content = result.model_dump(mode="json")
    if not result.success:
        return JSONResponse(status_code=422, content=content)

    logger.info(f"Successfully parsed statement: {len(result.transactions)} transactions found")
    return JSONResponse(content=content)


@app.get("/templates")
async def list_templates(bank_name: Optional[str] = None, format: Optional[str] = None):
    """List available templates."""
    templates = service.get_available_templates(bank_name, format)
    return JSONResponse(content={
        "success": True,
        "templates": [t.model_dump(mode="json") for t in templates]
    })


@app.get("/templates/{identifier}")
async def export_template(identifier: str):
    config = manager.export_template(identifier)
    if config is None:
        raise HTTPException(status_code=404, detail=f"Template not found: {identifier}")
    return JSONResponse(content=config)


@app.post("/templates/validate")
async def validate_template(config: Dict[str, Any] = Body(...)):
    return JSONResponse(content=manager.validate_template(config).model_dump())


@app.post("/templates")
async def create_template(config: Dict[str, Any] = Body(...)):
    """Validate and store a new template."""
    result = manager.create_template(config)
    status_code = 201 if result.success else 400
    return JSONResponse(status_code=status_code, content=result.model_dump(exclude_none=True))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
