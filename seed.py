"""
Startup seeding — demo account and learning topics.

Runs after schema init. Every insert is check-then-insert on a natural key
(normalized email, topic slug), so repeated boots add nothing. Failures are
logged and swallowed: seed data is cosmetic, the schema is not.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from models import ROLE_DEMO, now_ts

if TYPE_CHECKING:
    from database import Database

logger = logging.getLogger(__name__)

DEMO_USER = {
    "id": "demo-user-001",
    "email": "demo@algovault.com",
    "name": "Demo User",
    "password": "demo123",
}

LEARNING_TOPICS = [
    {"id": "topic-lld", "name": "Low Level Design", "icon": "Layout", "slug": "lld",
     "description": "Object-oriented design, design patterns, and SOLID principles.",
     "resources": [
         ("SOLID Principles", "Single responsibility, open/closed, Liskov substitution, "
          "interface segregation and dependency inversion.", "article", ""),
         ("Design Patterns Catalog", "Creational, structural and behavioral patterns.",
          "link", "https://refactoring.guru/design-patterns"),
     ],
     "roadmap": [
         ("OOP fundamentals", "Encapsulation, inheritance, polymorphism."),
         ("SOLID", "Apply each principle to a small class design."),
         ("Design patterns", "Strategy, Observer, Factory, Decorator."),
         ("Case studies", "Parking lot, elevator, library management."),
     ]},
    {"id": "topic-hld", "name": "High Level Design", "icon": "Server", "slug": "hld",
     "description": "System architecture, scalability, and distributed systems.",
     "resources": [
         ("Scalability Basics", "Vertical vs horizontal scaling, load balancing, caching.",
          "article", ""),
     ],
     "roadmap": [
         ("Networking basics", "DNS, HTTP, TCP, load balancers."),
         ("Storage", "SQL vs NoSQL, replication, sharding."),
         ("Caching and queues", "Cache strategies, message brokers."),
         ("Design interviews", "URL shortener, news feed, chat system."),
     ]},
    {"id": "topic-docker", "name": "Docker", "icon": "Box", "slug": "docker",
     "description": "Containerization, images, and orchestration basics.",
     "resources": [
         ("Docker Overview", "Images, containers, volumes and networks.",
          "link", "https://docs.docker.com/get-started/"),
     ],
     "roadmap": [
         ("Containers vs VMs", "Isolation model and trade-offs."),
         ("Dockerfiles", "Layers, caching, multi-stage builds."),
         ("Compose", "Multi-container local environments."),
     ]},
    {"id": "topic-k8s", "name": "Kubernetes", "icon": "Cloud", "slug": "k8s",
     "description": "Container orchestration at scale.",
     "resources": [
         ("Kubernetes Concepts", "Pods, deployments, services and ingress.",
          "link", "https://kubernetes.io/docs/concepts/"),
     ],
     "roadmap": [
         ("Core objects", "Pods, ReplicaSets, Deployments."),
         ("Networking", "Services, Ingress, DNS."),
         ("Operations", "Probes, autoscaling, rolling updates."),
     ]},
    {"id": "topic-golang", "name": "Golang", "icon": "Code", "slug": "golang",
     "description": "Go programming language, concurrency, and best practices.",
     "resources": [
         ("A Tour of Go", "Interactive introduction to the language.",
          "link", "https://go.dev/tour/"),
     ],
     "roadmap": [
         ("Syntax and types", "Structs, interfaces, slices, maps."),
         ("Concurrency", "Goroutines, channels, select, sync."),
         ("Tooling", "Modules, testing, profiling."),
     ]},
    {"id": "topic-behavioral", "name": "Behavioral", "icon": "Users", "slug": "behavioral",
     "description": "Soft skills and interview preparation.",
     "resources": [
         ("STAR Method", "Situation, task, action, result.", "article", ""),
     ],
     "roadmap": [
         ("Story bank", "Collect 8-10 stories from past projects."),
         ("Practice", "Mock interviews with feedback."),
     ]},
    {"id": "topic-linux", "name": "Linux", "icon": "Terminal", "slug": "linux",
     "description": "Linux commands, shell scripting, and system administration.",
     "resources": [
         ("Shell Essentials", "Navigation, pipes, redirection, permissions.", "article", ""),
     ],
     "roadmap": [
         ("Filesystem and permissions", "Paths, ownership, chmod."),
         ("Processes", "ps, top, signals, systemd."),
         ("Scripting", "Variables, loops, exit codes."),
     ]},
]


def ensure_demo_user(db: Database) -> bool:
    """Create the read-only demo account if missing. Returns True if created."""
    from db_stores import UserStoreDB

    users = UserStoreDB(db)
    if users.find_by_email(DEMO_USER["email"]) is not None:
        return False
    users.create(
        DEMO_USER["email"], DEMO_USER["name"], DEMO_USER["password"],
        role=ROLE_DEMO, user_id=DEMO_USER["id"],
    )
    logger.info("Created demo user %s", DEMO_USER["email"])
    return True


def seed_learning_data(db: Database) -> int:
    """Insert missing topics with their resources and roadmap. Returns topics added."""
    added = 0
    for topic in LEARNING_TOPICS:
        exists = db.fetchone("SELECT id FROM learning_topics WHERE slug = ?", (topic["slug"],))
        if exists is not None:
            continue
        ts = now_ts()
        db.execute(
            "INSERT INTO learning_topics (id, name, icon, description, slug, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (topic["id"], topic["name"], topic["icon"], topic["description"], topic["slug"], ts, ts),
        )
        for i, (title, content, kind, url) in enumerate(topic["resources"]):
            db.execute(
                "INSERT INTO learning_resources (id, topic_id, title, content, type, url, "
                "order_index, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (f"{topic['id']}-res-{i + 1}", topic["id"], title, content, kind, url, i, ts, ts),
            )
        for i, (title, description) in enumerate(topic["roadmap"]):
            db.execute(
                "INSERT INTO roadmap_items (id, topic_id, title, description, order_index, "
                "status, created_at, updated_at) VALUES (?, ?, ?, ?, ?, 'todo', ?, ?)",
                (f"{topic['id']}-step-{i + 1}", topic["id"], title, description, i, ts, ts),
            )
        added += 1
    if added:
        logger.info("Seeded %d learning topic(s)", added)
    return added


def run_seeders(db: Database) -> None:
    for seeder in (ensure_demo_user, seed_learning_data):
        try:
            seeder(db)
        except Exception as e:
            logger.warning("Seeding step %s failed: %s", seeder.__name__, e, exc_info=True)
