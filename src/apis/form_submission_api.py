from fastapi import APIRouter, Request
from fastapi.exceptions import HTTPException

# Utils
from utils.log_utils import LogUtil
from utils.request_utils import get_client_ip

# Services
from services.form_submission_service import FormSubmissionService

# Models
from models.request.form_submission_request import FormSubmissionRequest

# Exceptions
from exceptions.country_guard_exception import CountryGuardException, SubmissionRejectedException

def create_form_submission_api(
    log_util: LogUtil,
    form_submission_service: FormSubmissionService
) -> APIRouter:
    router = APIRouter(
        prefix="/form-submission",
        tags=["form-submission"],
    )

    @router.post("/{form_id}/{handler_id}/validate")
    async def validate_submission(request: Request, form_id: str, handler_id: str, submission: FormSubmissionRequest):
        """
        Validate phase. A rejected country is a normal response with accepted=false.
        """
        try:
            session_id = request.headers.get("x-session-id")
            if not session_id:
                raise HTTPException(status_code=401, detail="Unauthorized")

            return await form_submission_service.validate_submission(
                form_id=form_id,
                handler_id=handler_id,
                session_id=session_id,
                data=submission.data,
                client_ip=get_client_ip(request)
            )
        except HTTPException:
            raise
        except CountryGuardException as e:
            log_util.error(service_name="FormSubmissionAPI", message=f"Error validating submission: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="FormSubmissionAPI", message=f"Error validating submission: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/{form_id}/{handler_id}/submit")
    async def submit_submission(request: Request, form_id: str, handler_id: str, submission: FormSubmissionRequest):
        """
        Submit phase. The country check runs again and a rejection returns 422 with the outcome.
        """
        try:
            session_id = request.headers.get("x-session-id")
            if not session_id:
                raise HTTPException(status_code=401, detail="Unauthorized")

            return await form_submission_service.submit_submission(
                form_id=form_id,
                handler_id=handler_id,
                session_id=session_id,
                data=submission.data,
                client_ip=get_client_ip(request)
            )
        except HTTPException:
            raise
        except SubmissionRejectedException as e:
            raise HTTPException(status_code=e.status_code, detail=e.outcome.model_dump())
        except CountryGuardException as e:
            log_util.error(service_name="FormSubmissionAPI", message=f"Error submitting submission: {e.message}")
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except Exception as e:
            log_util.error(service_name="FormSubmissionAPI", message=f"Error submitting submission: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    return router
