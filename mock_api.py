"""Mock practice backend for the booking client.

Flask server with in-memory versions of the endpoints the client calls:
- Doctors and availability
- Patients and OTP login (every OTP is MOCK_OTP_CODE, default 123456)
- Appointments, cancellation and the questionnaire

Run with: python mock_api.py
"""
import os
import uuid
from datetime import datetime, timedelta
from functools import wraps

from flask import Flask, g, jsonify, request
from flask_cors import CORS

from clinic_booking import config
from clinic_booking.logging_config import RequestIDMiddleware

app = Flask(__name__)
CORS(app)
app.wsgi_app = RequestIDMiddleware(app.wsgi_app)

MOCK_OTP_CODE = os.getenv("MOCK_OTP_CODE", "123456")

OPERATING_HOURS = {
    "days": ["monday", "tuesday", "wednesday", "thursday", "friday"],
    "start_time": "09:00",
    "end_time": "17:00",
    "slot_duration_minutes": 30,
    "lunch_break": {
        "start": "13:00",
        "end": "14:00"
    }
}

DOCTORS = [
    {
        "id": 1,
        "first_name": "Naledi",
        "last_name": "Mokoena",
        "about": "General practitioner with a focus on family medicine.",
        "qualifications": "MBChB",
        "pricing": "Consultation from R550",
        "medicalAid": ["Discovery", "Bonitas"],
        "image": None,
        "active": True,
    },
    {
        "id": 2,
        "first_name": "Pieter",
        "last_name": "van Wyk",
        "about": "Paediatrics and childhood vaccinations.",
        "qualifications": "MBChB, FCPaed",
        "pricing": "Consultation from R750",
        "medicalAid": ["Discovery", "Momentum"],
        "image": None,
        "active": True,
    },
    {
        "id": 3,
        "first_name": "Ayesha",
        "last_name": "Patel",
        "about": "On sabbatical.",
        "qualifications": "MBChB",
        "pricing": None,
        "medicalAid": [],
        "image": None,
        "active": False,
    },
]

QUESTIONNAIRES = {
    1: {
        "id": 1,
        "name": "Medical Questionnaire",
        "questions": [
            {
                "question_text": "Do you have any allergies?",
                "question_type": "multiple_choice",
                "choices": "Yes, No, Not sure",
                "answer": None,
            },
            {
                "question_text": "What is the reason for your visit?",
                "question_type": "text",
                "choices": None,
                "answer": None,
            },
        ],
    }
}

# In-memory storage
patients = {}  # contact_number -> patient
otps = {}  # contact_number -> code
tokens = {}  # token -> patient id
appointments = []
counters = {"patient": 100, "appointment": 1000}


def reset_storage():
    """Forget all patients, codes, tokens and appointments."""
    patients.clear()
    otps.clear()
    tokens.clear()
    appointments.clear()
    counters.update({"patient": 100, "appointment": 1000})


def error(message, status):
    return jsonify({"detail": message}), status


def find_doctor(doctor_id):
    return next((d for d in DOCTORS if d["id"] == doctor_id), None)


def find_patient_by_id(patient_id):
    return next((p for p in patients.values() if p["id"] == patient_id), None)


def get_or_create_patient(contact_number):
    patient = patients.get(contact_number)
    if patient is None:
        counters["patient"] += 1
        patient = {
            "id": counters["patient"],
            "first_name": "",
            "last_name": "",
            "contact_number": contact_number,
        }
        patients[contact_number] = patient
    return patient


def require_token(view):
    """Reject requests without a known bearer token (401)."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        header = request.headers.get("Authorization", "")
        token = header[len("Bearer "):] if header.startswith("Bearer ") else None
        patient_id = tokens.get(token)
        if patient_id is None:
            return error("Authentication credentials were not provided or are invalid.", 401)
        g.patient = find_patient_by_id(patient_id)
        return view(*args, **kwargs)
    return wrapper


def issue_token(patient):
    token = uuid.uuid4().hex
    tokens[token] = patient["id"]
    return token


def generate_time_slots(doctor_id, day):
    """Free slots for one doctor on one day, in HH:MM."""
    if day.strftime("%A").lower() not in OPERATING_HOURS["days"]:
        return []

    booked = {
        appt["time"]
        for appt in appointments
        if appt["doctor_id"] == doctor_id
        and appt["date"] == day.isoformat()
        and appt["status"] != "CNC"
    }

    start = datetime.combine(day, datetime.strptime(OPERATING_HOURS["start_time"], "%H:%M").time())
    end = datetime.combine(day, datetime.strptime(OPERATING_HOURS["end_time"], "%H:%M").time())
    lunch_start = datetime.combine(day, datetime.strptime(OPERATING_HOURS["lunch_break"]["start"], "%H:%M").time())
    lunch_end = datetime.combine(day, datetime.strptime(OPERATING_HOURS["lunch_break"]["end"], "%H:%M").time())
    step = timedelta(minutes=OPERATING_HOURS["slot_duration_minutes"])

    slots = []
    current = start
    while current < end:
        in_lunch = lunch_start <= current < lunch_end
        label = current.strftime("%H:%M")
        if not in_lunch and current > datetime.now() and label not in booked:
            slots.append(label)
        current += step
    return slots


def serialize_appointment(appt):
    doctor = find_doctor(appt["doctor_id"])
    return {
        **appt,
        "doctor": {
            "id": doctor["id"],
            "first_name": doctor["first_name"],
            "last_name": doctor["last_name"],
        },
    }


# ----------------------------------------------------------------------
# doctors

@app.route('/doctors/', methods=['GET'])
def list_doctors():
    """GET /doctors/?filter_by_active=1"""
    doctors = DOCTORS
    if request.args.get("filter_by_active") == "1":
        doctors = [d for d in DOCTORS if d["active"]]
    return jsonify(doctors)


@app.route('/doctors/<int:doctor_id>/', methods=['GET'])
def get_doctor(doctor_id):
    doctor = find_doctor(doctor_id)
    if doctor is None:
        return error("Doctor not found", 404)
    payload = dict(doctor)
    if request.args.get("with_profile_picture") != "1":
        payload.pop("image", None)
    return jsonify(payload)


@app.route('/doctors/<int:doctor_id>/available_appointments/', methods=['GET'])
def available_appointments(doctor_id):
    """GET /doctors/{id}/available_appointments/?start_date=YYYY-MM-DD&end_date=YYYY-MM-DD"""
    if find_doctor(doctor_id) is None:
        return error("Doctor not found", 404)
    try:
        start = datetime.strptime(request.args["start_date"], "%Y-%m-%d").date()
        end = datetime.strptime(request.args.get("end_date", request.args["start_date"]), "%Y-%m-%d").date()
    except (KeyError, ValueError):
        return error("start_date is required (YYYY-MM-DD)", 400)

    by_date = {}
    day = start
    while day <= end:
        by_date[day.isoformat()] = generate_time_slots(doctor_id, day)
        day += timedelta(days=1)
    return jsonify({str(doctor_id): {"available_appointments": by_date}})


# ----------------------------------------------------------------------
# patients and login

@app.route('/patients/', methods=['POST'])
def create_patient():
    contact_number = (request.get_json(silent=True) or {}).get("contact_number")
    if not contact_number:
        return error("contact_number is required", 400)
    return jsonify(get_or_create_patient(contact_number))


@app.route('/patients/generate_otp/', methods=['POST'])
def generate_otp():
    contact_number = (request.get_json(silent=True) or {}).get("contact_number")
    if contact_number not in patients:
        return error("Patient not found", 404)
    otps[contact_number] = MOCK_OTP_CODE
    app.logger.info("OTP issued for %s", contact_number)
    return jsonify({"detail": "OTP sent"})


@app.route('/patients/create_and_generate_otp/', methods=['POST'])
def create_and_generate_otp():
    contact_number = (request.get_json(silent=True) or {}).get("contact_number")
    if not contact_number:
        return error("contact_number is required", 400)
    get_or_create_patient(contact_number)
    otps[contact_number] = MOCK_OTP_CODE
    return jsonify({"detail": "OTP sent"})


@app.route('/login/patient/', methods=['POST'])
def login_patient():
    """Multipart form: contact_number, otp."""
    contact_number = request.form.get("contact_number")
    code = request.form.get("otp")
    if not contact_number or otps.get(contact_number) != code:
        return error("Invalid OTP", 400)
    del otps[contact_number]
    patient = patients[contact_number]
    return jsonify({"token": issue_token(patient), "patient": patient})


@app.route('/authenticate_token/', methods=['POST'])
def authenticate_token():
    token = (request.get_json(silent=True) or {}).get("token")
    patient_id = tokens.get(token)
    if patient_id is None:
        return error("Invalid token", 401)
    return jsonify({"token": token, "patient": find_patient_by_id(patient_id)})


# ----------------------------------------------------------------------
# appointments

@app.route('/appointments/', methods=['POST'])
@require_token
def create_appointment():
    data = request.get_json(silent=True) or {}
    missing = [field for field in ("date", "time", "doctor_id", "patient") if not data.get(field)]
    if missing:
        return error(f"Missing fields: {', '.join(missing)}", 400)
    if find_doctor(data["doctor_id"]) is None:
        return error("Doctor not found", 400)

    taken = any(
        appt["doctor_id"] == data["doctor_id"]
        and appt["date"] == data["date"]
        and appt["time"] == data["time"]
        and appt["status"] != "CNC"
        for appt in appointments
    )
    if taken:
        return error("This slot is no longer available", 400)

    snapshot = data["patient"]
    g.patient["first_name"] = snapshot.get("first_name") or g.patient["first_name"]
    g.patient["last_name"] = snapshot.get("last_name") or g.patient["last_name"]

    counters["appointment"] += 1
    appointment = {
        "id": counters["appointment"],
        "doctor_id": data["doctor_id"],
        "patient_id": g.patient["id"],
        "date": data["date"],
        "time": data["time"],
        "patient": {
            "first_name": snapshot.get("first_name", ""),
            "last_name": snapshot.get("last_name", ""),
            "contact_number": snapshot.get("contact_number", ""),
        },
        "status": "UNC",
        "booked_by_patient": data.get("booked_by_patient", 1),
        "questionnaire_data": data.get("questionnaire_data"),
    }
    appointments.append(appointment)
    return jsonify(serialize_appointment(appointment)), 201


@app.route('/appointments/<int:appointment_id>/', methods=['PUT'])
@require_token
def edit_appointment(appointment_id):
    appointment = next((a for a in appointments if a["id"] == appointment_id), None)
    if appointment is None:
        return error("Appointment not found", 404)
    if appointment["patient_id"] != g.patient["id"]:
        return error("Not your appointment", 403)
    data = request.get_json(silent=True) or {}
    for field in ("date", "time", "doctor_id", "patient"):
        if data.get(field):
            appointment[field] = data[field]
    appointment["status"] = data.get("status", appointment["status"])
    return jsonify(serialize_appointment(appointment))


@app.route('/appointments/change-status/', methods=['POST'])
@require_token
def change_status():
    data = request.get_json(silent=True) or {}
    appointment = next((a for a in appointments if a["id"] == data.get("appointment_id")), None)
    if appointment is None:
        return error("Appointment not found", 404)
    if appointment["patient_id"] != g.patient["id"]:
        return error("Not your appointment", 403)
    if not data.get("appointment_status"):
        return error("appointment_status is required", 400)
    appointment["status"] = data["appointment_status"]
    return jsonify({"detail": "Status updated", "status": appointment["status"]})


@app.route('/patients/<int:patient_id>/appointments/', methods=['GET'])
@require_token
def patient_appointments(patient_id):
    if patient_id != g.patient["id"]:
        return error("Not your appointments", 403)
    return jsonify([
        serialize_appointment(a) for a in appointments
        if a["patient_id"] == patient_id and a["status"] != "CNC"
    ])


@app.route('/patients/<int:patient_id>/cancelled_appointments/', methods=['GET'])
@require_token
def cancelled_appointments(patient_id):
    if patient_id != g.patient["id"]:
        return error("Not your appointments", 403)
    return jsonify([
        serialize_appointment(a) for a in appointments
        if a["patient_id"] == patient_id and a["status"] == "CNC"
    ])


@app.route('/questionnaires/<int:questionnaire_id>/', methods=['GET'])
def get_questionnaire(questionnaire_id):
    questionnaire = QUESTIONNAIRES.get(questionnaire_id)
    if questionnaire is None:
        return error("Questionnaire not found", 404)
    return jsonify(questionnaire)


if __name__ == '__main__':
    print(f"Mock backend on http://localhost:{config.MOCK_API_PORT} (OTP code: {MOCK_OTP_CODE})")
    app.run(port=config.MOCK_API_PORT, debug=True)
