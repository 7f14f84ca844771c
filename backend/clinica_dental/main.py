import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from clinica_dental.core.settings import settings, validate_settings
from clinica_dental.db.session import SessionLocal, engine
from clinica_dental.models import Base
from clinica_dental.routers.access import router as access_router
from clinica_dental.routers.audit import router as audit_router
from clinica_dental.routers.completed_treatments import router as completed_treatments_router
from clinica_dental.routers.consents import router as consents_router, patient_router as patient_consents_router
from clinica_dental.routers.doctors import router as doctors_router
from clinica_dental.routers.notifications import router as notifications_router
from clinica_dental.routers.odontograms import patient_router as patient_odontograms_router
from clinica_dental.routers.patients import router as patients_router
from clinica_dental.routers.payments import router as payments_router
from clinica_dental.routers.promotions import router as promotions_router
from clinica_dental.routers.quotes import router as quotes_router, patient_router as patient_quotes_router
from clinica_dental.routers.treatments import router as treatments_router
from clinica_dental.routers.users import router as users_router
from clinica_dental.services.doctors import seed_default_doctors
from clinica_dental.services.notifications import InMemoryNotificationStore
from clinica_dental.services.users import seed_initial_admin

app = FastAPI(title="Clínica Dental API", version="0.1.0")
logger = logging.getLogger("clinica_dental.startup")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = request.headers.get("x-request-id")
    logger.exception("Unhandled server error", extra={"request_id": request_id})
    payload = {"detail": "Internal server error"}
    if request_id:
        payload["request_id"] = request_id
    return JSONResponse(status_code=500, content=payload)


@app.on_event("startup")
def startup():
    validate_settings(settings)
    Base.metadata.create_all(bind=engine)

    db: Session = SessionLocal()
    try:
        created = seed_initial_admin(
            db, external_id=settings.admin_external_id, email=str(settings.admin_email)
        )
        if created:
            logger.info("Initial admin linked to identity %s.", settings.admin_external_id)
        else:
            logger.info("Initial admin not created (users already exist).")
        seeded = seed_default_doctors(db)
        if seeded:
            logger.info("Seeded %s default doctors.", seeded)
    finally:
        db.close()

    app.state.notification_store = InMemoryNotificationStore(settings.notification_limit)
    logger.info("Notification store ready (limit %s).", settings.notification_limit)


@app.on_event("shutdown")
def shutdown():
    store = getattr(app.state, "notification_store", None)
    if store is not None:
        store.close()


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(access_router)
app.include_router(users_router)
app.include_router(doctors_router)
app.include_router(patients_router)
app.include_router(patient_odontograms_router)
app.include_router(treatments_router)
app.include_router(promotions_router)
app.include_router(quotes_router)
app.include_router(patient_quotes_router)
app.include_router(completed_treatments_router)
app.include_router(payments_router)
app.include_router(consents_router)
app.include_router(patient_consents_router)
app.include_router(notifications_router)
app.include_router(audit_router)
