# school_app/api/v1/api.py
from fastapi import APIRouter

from school_app.api.v1.endpoints import auth, students, admissions, fees, faculty, sequences

api_router_v1 = APIRouter(prefix="/api/v1")

api_router_v1.include_router(auth.router, prefix="/auth")
api_router_v1.include_router(students.router, prefix="/students")
api_router_v1.include_router(admissions.router, prefix="/admissions")
api_router_v1.include_router(fees.router, prefix="/fees")
api_router_v1.include_router(faculty.router, prefix="/faculty")
api_router_v1.include_router(sequences.router, prefix="/sequences")
