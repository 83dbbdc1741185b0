"""
Upstart
A marketplace connecting students with startups.

Architecture:
- PostgreSQL: Structured data (users, profiles, jobs, applications, blog)
- MongoDB GridFS: Uploaded files (resumes, company logos, blog pictures)
- Session/role resolver: decides where a signed-in user belongs
"""

__version__ = "1.0.0"
