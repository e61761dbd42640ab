"""
Demo Data Loader

Clears the database and seeds demo users, skills, one active swap (with
lessons, chat and resources) and one completed swap with reviews.
Usage: python -m skillswap.scripts.load_demo [--keep-existing]

All demo accounts use the password "password123".
"""
import asyncio
import argparse
from datetime import timedelta
from sqlalchemy import delete

from skillswap.api.auth import hash_password
from skillswap.database import Database, utcnow
from skillswap.models import (
    LearningSession,
    Message,
    Resource,
    Review,
    Skill,
    SwapRequest,
    SwapSession,
    User,
)
from skillswap.services.rating_aggregator import get_rating_aggregator

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    ("admin", "admin@skillswap.com", "Admin User", "Platform Administrator", True),
    ("john_doe", "john@example.com", "John Doe",
     "Full-stack developer with 5 years experience. Love teaching programming!", False),
    ("jane_smith", "jane@example.com", "Jane Smith",
     "Graphic designer and digital artist. Passionate about UI/UX design.", False),
    ("mike_wilson", "mike@example.com", "Mike Wilson",
     "Photography enthusiast and professional photographer.", False),
    ("sarah_jones", "sarah@example.com", "Sarah Jones",
     "Language tutor specializing in Spanish and French.", False),
]

# (username, skill_name, skill_type, description, proficiency_level)
DEMO_SKILLS = [
    ("john_doe", "JavaScript", "OFFER", "Expert in React, Node.js, and modern JavaScript", "Advanced"),
    ("john_doe", "Python", "OFFER", "Data science and web development", "Intermediate"),
    ("john_doe", "Graphic Design", "WANT", "Want to learn UI/UX design basics", "Beginner"),
    ("john_doe", "Photography", "WANT", "Interested in portrait photography", "Beginner"),
    ("jane_smith", "Graphic Design", "OFFER", "Adobe Photoshop, Illustrator, Figma expert", "Advanced"),
    ("jane_smith", "UI/UX Design", "OFFER", "User interface and experience design", "Advanced"),
    ("jane_smith", "JavaScript", "WANT", "Want to learn web development", "Beginner"),
    ("jane_smith", "Spanish", "WANT", "Want to learn conversational Spanish", "Beginner"),
    ("mike_wilson", "Photography", "OFFER", "Portrait, landscape, and event photography", "Advanced"),
    ("mike_wilson", "Photo Editing", "OFFER", "Adobe Lightroom and Photoshop", "Intermediate"),
    ("mike_wilson", "JavaScript", "WANT", "Want to build a portfolio website", "Beginner"),
    ("sarah_jones", "Spanish", "OFFER", "Native speaker, conversational and business Spanish", "Advanced"),
    ("sarah_jones", "French", "OFFER", "Fluent in French, can teach basics to intermediate", "Intermediate"),
    ("sarah_jones", "Graphic Design", "WANT", "Want to create marketing materials", "Beginner"),
]

# Children first so foreign keys are never violated
TABLES_IN_DELETE_ORDER = [Review, Message, Resource, LearningSession, SwapSession, SwapRequest, Skill, User]


async def clear_all_data(session):
    """Clear all existing data"""
    for model in TABLES_IN_DELETE_ORDER:
        await session.execute(delete(model))
    await session.flush()


async def seed_demo_data(session) -> dict:
    """
    Insert the demo dataset into an open session.

    Returns:
        Counts of the rows created per entity
    """
    now = utcnow()
    password_hash = hash_password(DEMO_PASSWORD)

    users = {}
    for username, email, full_name, bio, is_admin in DEMO_USERS:
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            full_name=full_name,
            bio=bio,
            is_admin=is_admin,
        )
        session.add(user)
        users[username] = user
    await session.flush()

    skills = {}
    for username, name, skill_type, description, level in DEMO_SKILLS:
        skill = Skill(
            user_id=users[username].id,
            skill_name=name,
            skill_type=skill_type,
            description=description,
            proficiency_level=level,
        )
        session.add(skill)
        skills[(username, name, skill_type)] = skill
    await session.flush()

    john, jane, mike = users["john_doe"], users["jane_smith"], users["mike_wilson"]
    john_js = skills[("john_doe", "JavaScript", "OFFER")]
    jane_design = skills[("jane_smith", "Graphic Design", "OFFER")]
    mike_photo = skills[("mike_wilson", "Photography", "OFFER")]

    # Active swap: John teaches JavaScript, Jane teaches Graphic Design
    active_request = SwapRequest(
        requester_id=john.id,
        receiver_id=jane.id,
        requester_skill_id=john_js.id,
        receiver_skill_id=jane_design.id,
        status="ACCEPTED",
        message="Hi Jane! I saw you offer graphic design and I want to learn it. "
                "I can teach you JavaScript in return!",
    )
    # Completed swap: Mike and John
    completed_request = SwapRequest(
        requester_id=mike.id,
        receiver_id=john.id,
        requester_skill_id=mike_photo.id,
        receiver_skill_id=john_js.id,
        status="ACCEPTED",
        message="Want to learn JavaScript for my portfolio",
    )
    session.add_all([active_request, completed_request])
    await session.flush()

    active_swap = SwapSession(
        swap_request_id=active_request.id,
        user1_id=john.id,
        user2_id=jane.id,
        user1_skill_id=john_js.id,
        user2_skill_id=jane_design.id,
        status="ACTIVE",
        started_at=now - timedelta(days=5),
    )
    completed_swap = SwapSession(
        swap_request_id=completed_request.id,
        user1_id=mike.id,
        user2_id=john.id,
        user1_skill_id=mike_photo.id,
        user2_skill_id=john_js.id,
        status="COMPLETED",
        started_at=now - timedelta(days=30),
        completed_at=now - timedelta(days=5),
    )
    session.add_all([active_swap, completed_swap])
    await session.flush()

    session.add_all([
        LearningSession(
            swap_session_id=active_swap.id, teacher_id=jane.id, student_id=john.id,
            topic="Introduction to Figma", session_type="Online",
            scheduled_date=now + timedelta(days=2), duration_hours=2.0, status="SCHEDULED",
            notes="We will cover basic tools and workspace", meeting_link="https://meet.example.com/figma-intro",
        ),
        LearningSession(
            swap_session_id=active_swap.id, teacher_id=john.id, student_id=jane.id,
            topic="JavaScript Fundamentals", session_type="Online",
            scheduled_date=now + timedelta(days=3), duration_hours=2.5, status="SCHEDULED",
            notes="Variables, functions, and DOM manipulation", meeting_link="https://meet.example.com/js-101",
        ),
        LearningSession(
            swap_session_id=active_swap.id, teacher_id=jane.id, student_id=john.id,
            topic="Color Theory and Typography", session_type="Offline",
            scheduled_date=now - timedelta(days=2), duration_hours=1.5, status="COMPLETED",
            notes="Great session! John learned a lot.", place="City Library, Room 3",
        ),
    ])

    session.add_all([
        Message(swap_session_id=active_swap.id, sender_id=john.id,
                message_text="Hi Jane! Thanks for accepting my swap request. Looking forward to learning from you!",
                created_at=now - timedelta(days=4)),
        Message(swap_session_id=active_swap.id, sender_id=jane.id,
                message_text="Hi John! No problem, I am excited to learn JavaScript from you too!",
                created_at=now - timedelta(days=4) + timedelta(hours=1)),
        Message(swap_session_id=active_swap.id, sender_id=john.id,
                message_text="When would be a good time for our first session?",
                created_at=now - timedelta(days=3)),
    ])

    session.add_all([
        Resource(swap_session_id=active_swap.id, uploaded_by=jane.id, resource_type="Link",
                 title="Figma Tutorial for Beginners",
                 content="https://www.figma.com/resources/learn-design/",
                 created_at=now - timedelta(days=3)),
        Resource(swap_session_id=active_swap.id, uploaded_by=john.id, resource_type="Link",
                 title="MDN JavaScript Guide",
                 content="https://developer.mozilla.org/en-US/docs/Web/JavaScript/Guide",
                 created_at=now - timedelta(days=2)),
        Resource(swap_session_id=active_swap.id, uploaded_by=jane.id, resource_type="Note",
                 title="Color Theory Quick Reference",
                 content="Primary Colors: Red, Blue, Yellow\nSecondary Colors: Orange, Green, Purple",
                 created_at=now - timedelta(days=1)),
    ])

    session.add_all([
        Review(swap_session_id=completed_swap.id, reviewer_id=john.id, reviewee_id=mike.id, rating=5,
               comment="Mike is an excellent photographer and great teacher!",
               created_at=now - timedelta(days=4)),
        Review(swap_session_id=completed_swap.id, reviewer_id=mike.id, reviewee_id=john.id, rating=5,
               comment="John taught me JavaScript really well. My portfolio website is now live thanks to him!",
               created_at=now - timedelta(days=4)),
    ])
    await session.flush()

    # Ratings and total_swaps are derived from the rows above
    await get_rating_aggregator().reconcile_user_stats(session)

    return {
        "users": len(users),
        "skills": len(skills),
        "swap_requests": 2,
        "swap_sessions": 2,
        "learning_sessions": 3,
        "messages": 3,
        "resources": 3,
        "reviews": 2,
    }


async def load_demo(keep_existing: bool = False):
    """Create the schema if needed, then (re)load the demo dataset"""
    database = Database()
    try:
        await database.create_all()
        async with database.transaction() as session:
            if not keep_existing:
                await clear_all_data(session)
                print("✓ Cleared existing data")
            counts = await seed_demo_data(session)
    finally:
        await database.dispose()

    print("✓ Demo data loaded")
    for entity, count in counts.items():
        print(f"  {entity}: {count}")
    print("\nSample accounts (password: password123):")
    for username, email, _, _, is_admin in DEMO_USERS:
        print(f"  {'Admin' if is_admin else 'User'}: {email}")


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Load SkillSwap demo data")
    parser.add_argument(
        "--keep-existing",
        action="store_true",
        help="Do not clear existing data before seeding"
    )

    args = parser.parse_args()

    asyncio.run(load_demo(keep_existing=args.keep_existing))


if __name__ == "__main__":
    main()
