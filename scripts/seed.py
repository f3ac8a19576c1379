"""Database seeder for local development.

Posts and votes go through the service layer so every seeded post keeps
``points`` equal to the sum of its votes.
"""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta

from forum.database import engine, async_session, Base
from forum.models import Post, User
from forum.security import hash_password
from forum.services import vote_service

TOPICS = ["python", "graphql", "postgresql", "redis", "docker", "async",
          "testing", "performance", "security", "sqlalchemy", "fastapi"]

SEED_PASSWORD = "password"


async def seed(small: bool = False):
    num_users = 5 if small else 50
    num_posts = 50 if small else 2000
    max_votes_per_post = 3 if small else 20

    print(f"Seeding: {num_users} users, {num_posts} posts, up to {max_votes_per_post} votes per post")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        # One hash for everybody; bcrypt is deliberately slow.
        hashed = await hash_password(SEED_PASSWORD)
        users = []
        for i in range(num_users):
            user = User(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                password=hashed,
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users (password: {SEED_PASSWORD!r})")

        now = datetime.now(timezone.utc)
        posts = []
        for i in range(num_posts):
            created = now - timedelta(minutes=random.randint(0, 60 * 24 * 90))
            post = Post(
                title=f"Post {i}: notes on {random.choice(TOPICS)}",
                text=f"This is the body of post {i}. " * random.randint(1, 20),
                creator_id=random.choice(users).id,
                points=0,
                created_at=created,
                updated_at=created,
            )
            session.add(post)
            posts.append(post)
        await session.commit()
        print(f"  Created {len(posts)} posts")

        total_votes = 0
        for post in posts:
            voters = random.sample(users, k=random.randint(0, min(max_votes_per_post, len(users))))
            for voter in voters:
                await vote_service.apply_vote(session, post.id, voter.id, random.choice((1, 1, -1)))
                total_votes += 1

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Posts: {num_posts}")
    print(f"  Votes: {total_votes}")


def main():
    parser = argparse.ArgumentParser(description="Seed the forum database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (50 posts)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
