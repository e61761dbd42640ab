"""
Session Activity

Learning sessions, shared resources and chat messages that live inside a
swap session. Each operation re-reads the parent swap session and gates on
its participants and its current status:

    create learning session   parent ACTIVE
    update learning session   any parent status
    create resource           parent ACTIVE
    delete resource           any parent status (uploader or participant)
    create message            parent ACTIVE or COMPLETED
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from skillswap.exceptions import AuthorizationDenied, NotFound, ValidationError
from skillswap.models.learning_session import LearningSession, LearningSessionStatus, LearningSessionType
from skillswap.models.message import Message
from skillswap.models.resource import Resource, ResourceType
from skillswap.models.swap_session import SwapSessionStatus
from skillswap.models.user import User
from skillswap.services.guards import (
    load_participant_session,
    load_swap_session,
    optional_text,
    parse_enum,
    require_text,
    to_dict,
)

logger = logging.getLogger(__name__)

_UNSET = object()


class SessionActivity:
    """Gated CRUD for the children of a swap session"""

    # --- learning sessions ----------------------------------------------

    async def create_learning_session(
        self,
        db: AsyncSession,
        actor_id: int,
        swap_session_id: int,
        teacher_id: int,
        student_id: int,
        topic: str,
        session_type: Any,
        scheduled_date: Optional[datetime],
        duration_hours: Optional[float] = None,
        notes: Optional[str] = None,
        meeting_link: Optional[str] = None,
        place: Optional[str] = None,
    ) -> LearningSession:
        """
        Schedule a lesson inside an ACTIVE swap session.

        teacher_id and student_id are caller-supplied, so both are checked
        against the stored participants before anything is written.

        Raises:
            ValidationError: Missing fields, bad session_type, Online without
                meeting_link, Offline without place, non-positive duration,
                or a teacher/student who is not a participant
            NotFound: Unknown swap session
            AuthorizationDenied: Actor is not a participant
            Conflict: Swap session is not ACTIVE
        """
        topic = require_text(topic, "topic")
        kind = parse_enum(LearningSessionType, session_type, "session_type")
        if scheduled_date is None:
            raise ValidationError("scheduled_date is required", field="scheduled_date")
        if teacher_id is None or student_id is None:
            raise ValidationError("teacher_id and student_id are required", field="teacher_id")

        meeting_link = optional_text(meeting_link)
        place = optional_text(place)
        if kind is LearningSessionType.ONLINE and not meeting_link:
            raise ValidationError("Meeting link is required for online sessions", field="meeting_link")
        if kind is LearningSessionType.OFFLINE and not place:
            raise ValidationError("Meeting place is required for offline sessions", field="place")

        if duration_hours is None:
            duration_hours = 1.0
        if duration_hours <= 0:
            raise ValidationError("duration_hours must be positive", field="duration_hours")

        swap_session = await load_participant_session(
            db,
            swap_session_id,
            actor_id,
            "create learning session",
            allowed=[SwapSessionStatus.ACTIVE],
        )
        if not swap_session.has_participant(teacher_id) or not swap_session.has_participant(student_id):
            raise ValidationError(
                "Teacher and student must be part of the swap session",
                field="teacher_id",
                details={"participants": list(swap_session.participant_ids())},
            )

        learning_session = LearningSession(
            swap_session_id=swap_session.id,
            teacher_id=teacher_id,
            student_id=student_id,
            topic=topic,
            session_type=kind.value,
            scheduled_date=scheduled_date,
            duration_hours=duration_hours,
            status=LearningSessionStatus.SCHEDULED.value,
            notes=optional_text(notes),
            meeting_link=meeting_link,
            place=place,
        )
        db.add(learning_session)
        await db.flush()
        logger.info(f"Learning session {learning_session.id} scheduled in swap session {swap_session.id}")
        return learning_session

    async def update_learning_session(
        self,
        db: AsyncSession,
        actor_id: int,
        learning_session_id: int,
        status: Any = None,
        notes: Any = _UNSET,
    ) -> LearningSession:
        """Change status and/or notes; allowed for either participant whatever the parent status"""
        if status is None and notes is _UNSET:
            raise ValidationError("No fields to update")
        new_status = parse_enum(LearningSessionStatus, status, "status") if status is not None else None

        learning_session = await db.get(LearningSession, learning_session_id)
        if learning_session is None:
            raise NotFound("Learning session not found", details={"learning_session_id": learning_session_id})
        await load_participant_session(db, learning_session.swap_session_id, actor_id, "update learning session")

        if new_status is not None:
            learning_session.status = new_status.value
        if notes is not _UNSET:
            learning_session.notes = notes
        await db.flush()
        return learning_session

    async def list_learning_sessions(
        self, db: AsyncSession, swap_session_id: int, actor_id: int
    ) -> List[LearningSession]:
        await load_participant_session(db, swap_session_id, actor_id, "view")
        result = await db.execute(
            select(LearningSession)
            .where(LearningSession.swap_session_id == swap_session_id)
            .order_by(LearningSession.scheduled_date.asc(), LearningSession.id.asc())
        )
        return list(result.scalars().all())

    async def list_learning_sessions_detailed(
        self, db: AsyncSession, swap_session_id: int, actor_id: int
    ) -> List[Dict[str, Any]]:
        """Learning sessions with teacher and student names"""
        await load_participant_session(db, swap_session_id, actor_id, "view")
        teacher = aliased(User)
        student = aliased(User)
        result = await db.execute(
            select(LearningSession, teacher.username, teacher.full_name, student.username, student.full_name)
            .join(teacher, teacher.id == LearningSession.teacher_id)
            .join(student, student.id == LearningSession.student_id)
            .where(LearningSession.swap_session_id == swap_session_id)
            .order_by(LearningSession.scheduled_date.asc(), LearningSession.id.asc())
        )
        sessions = []
        for learning_session, t_username, t_name, s_username, s_name in result.all():
            row = to_dict(learning_session)
            row.update(
                teacher_username=t_username,
                teacher_name=t_name,
                student_username=s_username,
                student_name=s_name,
            )
            sessions.append(row)
        return sessions

    # --- resources ------------------------------------------------------

    async def create_resource(
        self,
        db: AsyncSession,
        actor_id: int,
        swap_session_id: int,
        resource_type: Any,
        title: str,
        content: Optional[str] = None,
        file_path: Optional[str] = None,
    ) -> Resource:
        kind = parse_enum(ResourceType, resource_type, "resource_type")
        title = require_text(title, "title")

        swap_session = await load_participant_session(
            db,
            swap_session_id,
            actor_id,
            "add resources",
            allowed=[SwapSessionStatus.ACTIVE],
        )

        resource = Resource(
            swap_session_id=swap_session.id,
            uploaded_by=actor_id,
            resource_type=kind.value,
            title=title,
            content=optional_text(content),
            file_path=optional_text(file_path),
        )
        db.add(resource)
        await db.flush()
        logger.info(f"Resource {resource.id} added to swap session {swap_session.id} by user {actor_id}")
        return resource

    async def delete_resource(self, db: AsyncSession, actor_id: int, resource_id: int) -> None:
        resource = await db.get(Resource, resource_id)
        if resource is None:
            raise NotFound("Resource not found", details={"resource_id": resource_id})

        swap_session = await load_swap_session(db, resource.swap_session_id)
        if resource.uploaded_by != actor_id and not swap_session.has_participant(actor_id):
            logger.warning(f"User {actor_id} denied deleting resource {resource_id}")
            raise AuthorizationDenied("Not authorized to delete this resource")

        await db.delete(resource)
        await db.flush()
        logger.info(f"Resource {resource_id} deleted by user {actor_id}")

    async def list_resources(self, db: AsyncSession, swap_session_id: int, actor_id: int) -> List[Dict[str, Any]]:
        """Resources newest first, with the uploader's name"""
        await load_participant_session(db, swap_session_id, actor_id, "view")
        result = await db.execute(
            select(Resource, User.username, User.full_name)
            .join(User, User.id == Resource.uploaded_by)
            .where(Resource.swap_session_id == swap_session_id)
            .order_by(Resource.created_at.desc(), Resource.id.desc())
        )
        resources = []
        for resource, username, full_name in result.all():
            row = to_dict(resource)
            row.update(uploaded_by_username=username, uploaded_by_name=full_name)
            resources.append(row)
        return resources

    # --- messages -------------------------------------------------------

    async def create_message(
        self, db: AsyncSession, actor_id: int, swap_session_id: int, message_text: str
    ) -> Message:
        """Append a chat message; chat stays open after the swap is completed"""
        message_text = require_text(message_text, "message_text")

        swap_session = await load_participant_session(
            db,
            swap_session_id,
            actor_id,
            "send messages",
            allowed=[SwapSessionStatus.ACTIVE, SwapSessionStatus.COMPLETED],
        )

        message = Message(swap_session_id=swap_session.id, sender_id=actor_id, message_text=message_text)
        db.add(message)
        await db.flush()
        return message

    async def list_messages(self, db: AsyncSession, swap_session_id: int, actor_id: int) -> List[Dict[str, Any]]:
        await load_participant_session(db, swap_session_id, actor_id, "view")
        result = await db.execute(
            select(Message, User.username, User.full_name)
            .join(User, User.id == Message.sender_id)
            .where(Message.swap_session_id == swap_session_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        messages = []
        for message, username, full_name in result.all():
            row = to_dict(message)
            row.update(sender_username=username, sender_name=full_name)
            messages.append(row)
        return messages


# Singleton instance
_session_activity_instance: Optional[SessionActivity] = None


def get_session_activity() -> SessionActivity:
    """Get singleton instance of SessionActivity"""
    global _session_activity_instance
    if _session_activity_instance is None:
        _session_activity_instance = SessionActivity()
    return _session_activity_instance
