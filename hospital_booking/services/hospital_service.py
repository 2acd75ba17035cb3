from sqlalchemy.orm import Session
from typing import List
import logging

from ..models.hospital import Hospital
from ..models.appointment import Appointment
from ..core.exceptions import NotFoundError, HospitalInUseError
from ..schemas.hospital import HospitalCreate, HospitalUpdate

logger = logging.getLogger(__name__)

class HospitalService:
    """CRUD over hospital records.

    Authorization is the caller's concern: the routes guard the write
    operations with the admin role before reaching this service.
    """

    def __init__(self, db: Session, delete_policy: str = "restrict"):
        self.db = db
        self.delete_policy = delete_policy

    def list_hospitals(self) -> List[Hospital]:
        return self.db.query(Hospital).order_by(Hospital.id).all()

    def list_vaccine_centers(self) -> List[Hospital]:
        """Every hospital can act as a vaccination center."""
        return self.db.query(Hospital).order_by(Hospital.id).all()

    def get_hospital(self, hospital_id: int) -> Hospital:
        hospital = self.db.query(Hospital).filter(Hospital.id == hospital_id).first()
        if not hospital:
            raise NotFoundError(f"No hospital with the id of {hospital_id}")
        return hospital

    def create_hospital(self, hospital_data: HospitalCreate) -> Hospital:
        hospital = Hospital(**hospital_data.model_dump())
        self.db.add(hospital)
        self.db.commit()
        self.db.refresh(hospital)

        logger.info(f"Created hospital {hospital.id} ({hospital.name})")
        return hospital

    def update_hospital(self, hospital_id: int, hospital_data: HospitalUpdate) -> Hospital:
        hospital = self.get_hospital(hospital_id)

        for field, value in hospital_data.model_dump(exclude_unset=True).items():
            setattr(hospital, field, value)

        self.db.commit()
        self.db.refresh(hospital)
        return hospital

    def delete_hospital(self, hospital_id: int) -> None:
        hospital = self.get_hospital(hospital_id)

        dependents = self.db.query(Appointment).filter(
            Appointment.hospital_id == hospital_id
        )
        dependent_count = dependents.count()

        if dependent_count:
            if self.delete_policy != "cascade":
                raise HospitalInUseError(
                    f"Hospital {hospital_id} still has {dependent_count} appointment(s)"
                )
            dependents.delete(synchronize_session=False)
            logger.info(f"Removed {dependent_count} appointment(s) of hospital {hospital_id}")

        self.db.delete(hospital)
        self.db.commit()
        logger.info(f"Deleted hospital {hospital_id}")
