"""Database seeder: demo users, posts and comments for local development."""
import argparse
import asyncio
import logging
import random
import time

from app.database import engine, async_session, Base
from app.models import Comment, Post, User

logger = logging.getLogger("seed")

TOPICS = ["python", "fastapi", "postgresql", "docker", "testing", "security",
          "react", "typescript", "devops", "performance"]

DEMO_PASSWORD = "password123"


async def seed(small: bool = False) -> None:
    num_users = 5 if small else 25
    num_posts = 30 if small else 500
    max_comments = 3 if small else 8

    logger.info("Seeding: %d users, %d posts, up to %d comments each", num_users, num_posts, max_comments)
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        # Plaintext passwords are hashed by the User pre-save hook.
        users = [
            User(
                username=f"user_{i:03d}",
                email=f"user_{i:03d}@example.com",
                password=DEMO_PASSWORD,
                is_admin=(i == 0),
            )
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()
        logger.info("  Created %d users (password: %s)", len(users), DEMO_PASSWORD)

        total_comments = 0
        for i in range(num_posts):
            topic = random.choice(TOPICS)
            author = random.choice(users)
            post = Post(
                title=f"Post {i}: notes on {topic}",
                content=f"Some thoughts about {topic}. " * 10,
            )
            author.posts.append(post)
            for _ in range(random.randint(0, max_comments)):
                post.comments.append(
                    Comment(
                        content=f"Interesting take on {topic}!",
                        author=random.choice(users),
                    )
                )
                total_comments += 1
            session.add(post)

        await session.commit()

    logger.info(
        "Seeding complete in %.1fs: %d users, %d posts, %d comments",
        time.perf_counter() - start,
        num_users,
        num_posts,
        total_comments,
    )


def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset (30 posts)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
