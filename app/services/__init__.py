from app.services.existing_headings import upload_snapshot
from app.services.heading_import import import_headings
from app.services.pdm_service import create_pdm, delete_pdm, update_pdm
from app.services.qc_feedback import submit_feedback
from app.services.status_events import record_status_event

__all__ = [
	"import_headings",
	"upload_snapshot",
	"create_pdm",
	"update_pdm",
	"delete_pdm",
	"record_status_event",
	"submit_feedback",
]
