# app/services/notifications.py
# 좋아요/저장/공유 마일스톤 도달 시 레시피 주인에게 FCM 푸시

from __future__ import annotations
from typing import Dict, List
import logging

from firebase_admin import messaging
from starlette.concurrency import run_in_threadpool

from app.core.firebase import send_push

log = logging.getLogger(__name__)

MILESTONES: Dict[str, List[int]] = {
    "likes": [10, 50, 100, 500, 1000, 5000, 10000],
    "saves": [10, 50, 100, 500, 1000, 5000, 10000],
    "shares": [10, 50, 100, 500, 1000],
}

TITLE_MAX = 30


def is_milestone(count: int, metric_type: str) -> bool:
    return count in MILESTONES.get(metric_type, ())


def get_milestone_message(recipe_title: str, metric_type: str, count: int) -> Dict[str, str]:
    title = recipe_title or ""
    if len(title) > TITLE_MAX:
        title = title[:27] + "..."

    if metric_type == "likes":
        return {
            "title": "🎉 Your recipe is getting love!",
            "body": f'Your "{title}" recipe just hit {count} likes!',
        }
    if metric_type == "saves":
        return {
            "title": "📥 People are saving your recipe!",
            "body": f'{count} people saved your "{title}" recipe!',
        }
    if metric_type == "shares":
        return {
            "title": "🔗 Your recipe is being shared!",
            "body": f'Your "{title}" recipe was shared {count} times!',
        }
    return {
        "title": "🎉 Recipe milestone reached!",
        "body": f'Your "{title}" recipe reached {count} {metric_type}!',
    }


def build_milestone_message(token: str, recipe_id: str, metric_type: str, count: int, title: str, body: str) -> messaging.Message:
    return messaging.Message(
        token=token,
        notification=messaging.Notification(title=title, body=body),
        data={
            "route": "/recipeDetail",
            "recipeId": recipe_id,
            "type": "milestone",
            "metricType": metric_type,
            "count": str(count),
        },
        android=messaging.AndroidConfig(
            notification=messaging.AndroidNotification(
                channel_id="recipe_milestones",
                priority="high",
                icon="ic_notification",
            ),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(aps=messaging.Aps(badge=1, sound="default")),
        ),
    )


async def check_and_send_milestone_notification(
    db,
    owner_id: str,
    recipe_id: str,
    recipe_title: str,
    metric_type: str,
    new_count: int,
) -> bool:
    """
    BackgroundTasks 에서 호출. 보냈으면 True.
    실패는 로그만 남긴다 (본 요청 흐름을 깨지 않음)
    """
    try:
        if not is_milestone(new_count, metric_type):
            return False

        log.info("Milestone reached: %s hit %d %s", recipe_title, new_count, metric_type)

        user = await db["users"].find_one({"_id": owner_id}, {"fcmToken": 1})
        if not user:
            log.info("User %s not found, skipping notification", owner_id)
            return False
        token = user.get("fcmToken")
        if not token:
            log.info("No FCM token for user %s, skipping notification", owner_id)
            return False

        msg = get_milestone_message(recipe_title, metric_type, new_count)
        message = build_milestone_message(token, recipe_id, metric_type, new_count, msg["title"], msg["body"])
        response = await run_in_threadpool(send_push, message)
        log.info("Milestone notification sent: %s", response)
        return True
    except Exception as e:
        log.error("Error sending milestone notification: %s", e)
        return False
