from fastapi import HTTPException

from rfblind.celery_tasks.celery import app as celery_app
from rfblind.schemas import TaskStatus


def get_celery_task_status(task_id: str) -> TaskStatus:
    try:
        task_result = celery_app.AsyncResult(task_id)

        info = task_result.info if isinstance(task_result.info, dict) else None
        status_response = TaskStatus(
            task_id=task_id, status=task_result.status, result=info
        )

        if task_result.ready():
            if task_result.successful():
                status_response.result = task_result.result
            else:
                status_response.result = None
                status_response.error = str(task_result.info)

        return status_response

    except Exception as e:
        raise HTTPException(
            status_code=500, detail=f"Error checking task status: {str(e)}"
        )
