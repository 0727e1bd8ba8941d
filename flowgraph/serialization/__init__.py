# Workflow serialization: backend transform, config flattening, export/import
from .flatten import flatten
from .transform import transform_workflow_from_backend, transform_workflow_to_backend
from .exporters import export_json, export_yaml, export_sql, export_config
from .importer import import_workflow, ImportResult

__all__ = [
    'flatten',
    'transform_workflow_from_backend',
    'transform_workflow_to_backend',
    'export_json',
    'export_yaml',
    'export_sql',
    'export_config',
    'import_workflow',
    'ImportResult',
]
