"""Populate the blog database with demo users, posts and interactions."""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta

from blog_api.database import engine, async_session, Base
from blog_api.models import (
    Blog,
    BlogBookmark,
    BlogLike,
    BlogView,
    Category,
    CategoryOnBlog,
    Comment,
    Follow,
    Tag,
    TagOnBlog,
    User,
)
from blog_api.services.blog_service import estimate_reading_time
from blog_api.services.interaction_service import interaction_id
from blog_api.services.slug_service import slugify

CATEGORIES = ["Engineering", "Design", "Career", "Travel", "Food"]

TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance",
        "security", "microservices", "rest-api"]


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_blogs = 100 if small else 2000
    max_comments_per_blog = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_blogs} blogs")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        categories = [Category(name=name) for name in CATEGORIES]
        tags = [Tag(name=name) for name in TAGS]
        session.add_all(categories + tags)

        users = [
            User(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                name=f"User {i}",
                bio=f"I am demo user number {i}. I write about technology.",
            )
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()
        print(f"  Created {len(categories)} categories, {len(tags)} tags, {len(users)} users")

        for user in users:
            for target in random.sample(users, k=min(5, num_users)):
                if target.id != user.id:
                    session.add(Follow(follower_id=user.id, following_id=target.id))

        batch_size = 250
        totals = {"comments": 0, "likes": 0, "views": 0}
        for batch_start in range(0, num_blogs, batch_size):
            batch = []
            for i in range(batch_start, min(batch_start + batch_size, num_blogs)):
                topic = random.choice(TAGS)
                title = f"Post {i}: Getting more out of {topic}"
                content = f"This is the full content of post {i} about {topic}. " * 30
                blog = Blog(
                    title=title,
                    slug=slugify(title),
                    description=f"Practical notes on {topic} in production.",
                    content=content,
                    image=f"https://picsum.photos/seed/{i}/1200/630",
                    date=datetime.now(timezone.utc) - timedelta(days=random.randint(0, 365)),
                    reading_time=estimate_reading_time(content),
                    featured=random.random() < 0.05,
                    author_id=random.choice(users).id,
                )
                batch.append(blog)
            session.add_all(batch)
            await session.flush()

            for blog in batch:
                for category in random.sample(categories, k=random.randint(1, 2)):
                    session.add(CategoryOnBlog(blog_id=blog.id, category_id=category.id))
                for tag in random.sample(tags, k=random.randint(1, 4)):
                    session.add(TagOnBlog(blog_id=blog.id, tag_id=tag.id))

                readers = random.sample(users, k=random.randint(0, min(8, num_users)))
                for reader in readers:
                    session.add(BlogView(blog_id=blog.id, user_id=reader.id))
                    if random.random() < 0.5:
                        session.add(BlogLike(
                            id=interaction_id(blog.id, reader.id), blog_id=blog.id, user_id=reader.id,
                        ))
                        totals["likes"] += 1
                    if random.random() < 0.2:
                        session.add(BlogBookmark(
                            id=interaction_id(blog.id, reader.id), blog_id=blog.id, user_id=reader.id,
                        ))
                blog.view_count = len(readers)
                totals["views"] += len(readers)

                for _ in range(random.randint(0, max_comments_per_blog)):
                    session.add(Comment(
                        content="Great post! Very helpful for understanding the topic.",
                        blog_id=blog.id,
                        author_id=random.choice(users).id,
                    ))
                    totals["comments"] += 1
            await session.flush()
            print(f"  Batch {batch_start}-{batch_start + len(batch)}: blogs created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Blogs: {num_blogs}")
    print(f"  Comments: {totals['comments']}, likes: {totals['likes']}, views: {totals['views']}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 blogs)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
