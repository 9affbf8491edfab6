"""Canned notifications for common platform events. All fire-and-forget via NotificationService.notify."""

from __future__ import annotations

from typing import Optional

from ..models import NotificationKind
from .notifications import NotificationService


async def achievement_unlocked(svc: NotificationService, user_id: str, achievement_name: str, xp_reward: int) -> bool:
    return await svc.notify(
        user_id,
        NotificationKind.SUCCESS,
        f"🏆 Achievement Unlocked: {achievement_name}",
        f"You've earned {xp_reward} XP!",
    )


async def team_created(svc: NotificationService, user_id: str, team_name: str) -> bool:
    return await svc.notify(
        user_id, NotificationKind.SUCCESS, f"🎯 Team Created: {team_name}", f'Your team "{team_name}" is ready to go!'
    )


async def added_to_team(svc: NotificationService, user_id: str, team_name: str, role: str) -> bool:
    return await svc.notify(
        user_id, NotificationKind.INFO, f"👥 Added to Team: {team_name}", f"You've been added as a {role} to the team."
    )


async def project_created(svc: NotificationService, user_id: str, project_name: str) -> bool:
    return await svc.notify(
        user_id, NotificationKind.SUCCESS, f"🚀 Project Created: {project_name}", "Your new project is ready to go!"
    )


async def added_to_project(svc: NotificationService, user_id: str, project_name: str, role: str) -> bool:
    return await svc.notify(
        user_id,
        NotificationKind.INFO,
        f"📌 Added to Project: {project_name}",
        f"You've been added as a {role} to the project.",
    )


async def project_completed(svc: NotificationService, user_id: str, project_name: str) -> bool:
    return await svc.notify(
        user_id,
        NotificationKind.SUCCESS,
        f"✅ Project Completed: {project_name}",
        "Congratulations on finishing your project!",
    )


async def project_started(svc: NotificationService, user_id: str, project_name: str) -> bool:
    return await svc.notify(
        user_id, NotificationKind.INFO, f"⏱️ Project Started: {project_name}", "You've started working on this project."
    )


async def level_up(svc: NotificationService, user_id: str, new_level: int) -> bool:
    return await svc.notify(
        user_id, NotificationKind.SUCCESS, "⬆️ Level Up!", f"You've reached level {new_level}! Keep it up!"
    )


async def onboarding_complete(svc: NotificationService, user_id: str) -> bool:
    return await svc.notify(
        user_id,
        NotificationKind.SUCCESS,
        "🎉 Welcome to AeThex!",
        "You've completed your profile setup. Let's get started!",
    )


async def account_linked(svc: NotificationService, user_id: str, provider: str) -> bool:
    return await svc.notify(
        user_id,
        NotificationKind.SUCCESS,
        f"🔗 Account Linked: {provider}",
        f"Your {provider} account has been successfully linked.",
    )


async def email_verified(svc: NotificationService, user_id: str) -> bool:
    return await svc.notify(
        user_id, NotificationKind.SUCCESS, "✉️ Email Verified", "Your email address has been verified successfully."
    )


async def custom(
    svc: NotificationService,
    user_id: str,
    kind: str,
    title: str,
    message: Optional[str] = None,
) -> bool:
    return await svc.notify(user_id, kind, title, message)
