from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
import logging

from ..models.appointment import Appointment
from ..models.hospital import Hospital
from ..models.user import User
from ..core.exceptions import (
    AlreadyBookedError, AuthorizationError, HospitalFullError, NotFoundError, ValidationError
)
from ..core.security import Identity
from ..schemas.appointment import AppointmentCreate, AppointmentUpdate

logger = logging.getLogger(__name__)

class AppointmentService:
    """Appointment bookings.

    Booking rules:

    * a user holds at most one appointment. The unique index on
      ``appointments.user_id`` is what guarantees it; the lookup in
      :meth:`create_appointment` only produces a friendlier error first.
    * a hospital with a ``capacity`` accepts at most that many appointments.
      The hospital row is locked while its bookings are counted, so
      concurrent bookings cannot overfill it.
    * only the owner of an appointment or an admin may read or change it.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_appointments(
        self,
        identity: Identity,
        hospital_id: Optional[int] = None
    ) -> List[Appointment]:
        if hospital_id is not None:
            self._get_hospital(hospital_id)

        query = self.db.query(Appointment).options(joinedload(Appointment.hospital))

        if not identity.is_admin:
            query = query.filter(Appointment.user_id == identity.user_id)

        if hospital_id is not None:
            query = query.filter(Appointment.hospital_id == hospital_id)

        return query.order_by(Appointment.appointment_date, Appointment.id).all()

    def get_appointment(self, identity: Identity, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).options(
            joinedload(Appointment.hospital)
        ).filter(Appointment.id == appointment_id).first()

        if not appointment:
            raise NotFoundError(f"No appointment with the id of {appointment_id}")

        self._check_owner(identity, appointment)
        return appointment

    def create_appointment(
        self,
        identity: Identity,
        appointment_data: AppointmentCreate,
        hospital_id: Optional[int] = None
    ) -> Appointment:
        hospital_id = hospital_id if hospital_id is not None else appointment_data.hospital_id
        if hospital_id is None:
            raise ValidationError("hospital_id is required")

        owner_id = self._resolve_owner(identity, appointment_data.user_id)

        existing = self.db.query(Appointment).filter(
            Appointment.user_id == owner_id
        ).first()
        if existing:
            raise AlreadyBookedError(
                f"The user with ID {owner_id} has already made an appointment"
            )

        hospital = self._get_hospital(hospital_id, lock=True)
        self._check_capacity(hospital)

        appointment = Appointment(
            user_id=owner_id,
            hospital_id=hospital.id,
            appointment_date=appointment_data.appointment_date,
        )
        self.db.add(appointment)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request booked for this user first
            self.db.rollback()
            raise AlreadyBookedError(
                f"The user with ID {owner_id} has already made an appointment"
            )
        self.db.refresh(appointment)

        logger.info(
            f"User {owner_id} booked appointment {appointment.id} "
            f"at hospital {hospital.id} for {appointment.appointment_date}"
        )
        return appointment

    def update_appointment(
        self,
        identity: Identity,
        appointment_id: int,
        appointment_data: AppointmentUpdate
    ) -> Appointment:
        appointment = self.get_appointment(identity, appointment_id)
        changes = appointment_data.model_dump(exclude_unset=True)

        if "appointment_date" in changes and changes["appointment_date"] is None:
            raise ValidationError("appointment_date cannot be cleared")

        new_hospital_id = changes.get("hospital_id")
        if "hospital_id" in changes and new_hospital_id is None:
            raise ValidationError("hospital_id cannot be cleared")
        if new_hospital_id is not None and new_hospital_id != appointment.hospital_id:
            hospital = self._get_hospital(new_hospital_id, lock=True)
            self._check_capacity(hospital)

        for field, value in changes.items():
            setattr(appointment, field, value)

        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def delete_appointment(self, identity: Identity, appointment_id: int) -> None:
        appointment = self.get_appointment(identity, appointment_id)

        self.db.delete(appointment)
        self.db.commit()
        logger.info(f"Deleted appointment {appointment_id}")

    def _resolve_owner(self, identity: Identity, requested_user_id: Optional[int]) -> int:
        if requested_user_id is None or requested_user_id == identity.user_id:
            return identity.user_id

        if not identity.is_admin:
            raise AuthorizationError("Only an admin can book for another user")

        user = self.db.query(User).filter(User.id == requested_user_id).first()
        if not user:
            raise NotFoundError(f"No user with the id of {requested_user_id}")
        return user.id

    def _get_hospital(self, hospital_id: int, lock: bool = False) -> Hospital:
        query = self.db.query(Hospital).filter(Hospital.id == hospital_id)
        if lock:
            # Held until commit so capacity counts for this hospital run one at a time
            query = query.with_for_update()
        hospital = query.first()
        if not hospital:
            raise NotFoundError(f"No hospital with the id of {hospital_id}")
        return hospital

    def _check_capacity(self, hospital: Hospital):
        if hospital.capacity is None:
            return

        booked = self.db.query(Appointment).filter(
            Appointment.hospital_id == hospital.id
        ).count()
        if booked >= hospital.capacity:
            raise HospitalFullError(
                f"Hospital {hospital.id} has reached its capacity of {hospital.capacity}"
            )

    def _check_owner(self, identity: Identity, appointment: Appointment):
        if not identity.is_admin and appointment.user_id != identity.user_id:
            raise AuthorizationError(
                f"User {identity.user_id} is not authorized to access this appointment"
            )
