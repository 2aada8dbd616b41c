from pydantic import BaseModel


class GenerationCycleResponse(BaseModel):
    templates: int
    instances_created: int
    duplicates_skipped: int
    failed_occurrences: int
    failed_templates: int
