from onboardpro.models import Notification
from onboardpro.utils.notifications import create_notification


def _seed(db, user, count, read=0):
    for index in range(count):
        notification = create_notification(db, user.id, f"Title {index}", f"Message {index}")
        if index < read:
            notification.is_read = True
    db.commit()


def test_list_most_recent_first_with_limit(client, db, employee_user, employee_headers):
    _seed(db, employee_user, 25)

    response = client.get("/notifications", headers=employee_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data) == 20
    assert data[0]["title"] == "Title 24"


def test_unread_only_and_count(client, db, employee_user, employee_headers):
    _seed(db, employee_user, 5, read=2)

    unread = client.get("/notifications", params={"unread_only": True}, headers=employee_headers).json()["data"]
    count = client.get("/notifications/unread-count", headers=employee_headers).json()["data"]

    assert len(unread) == 3
    assert count == {"count": 3}


def test_mark_one_and_all_read(client, db, employee_user, employee_headers):
    _seed(db, employee_user, 3)
    first = db.query(Notification).order_by(Notification.id).first()

    single = client.put(f"/notifications/{first.id}/read", headers=employee_headers)
    assert single.json()["data"]["is_read"] is True
    assert single.json()["data"]["read_at"] is not None

    everything = client.put("/notifications/read-all", headers=employee_headers)
    assert everything.json()["data"] == {"updated": 2}
    assert client.get("/notifications/unread-count", headers=employee_headers).json()["data"]["count"] == 0


def test_notifications_are_private(client, db, employee_user, hr_user, hr_headers):
    _seed(db, employee_user, 1)
    notification = db.query(Notification).first()

    assert client.put(f"/notifications/{notification.id}/read", headers=hr_headers).status_code == 404
    assert client.delete(f"/notifications/{notification.id}", headers=hr_headers).status_code == 404
    assert client.get("/notifications", headers=hr_headers).json()["data"] == []


def test_delete_and_clear_all(client, db, employee_user, hr_user, employee_headers):
    _seed(db, employee_user, 3)
    _seed(db, hr_user, 1)
    first = db.query(Notification).filter(Notification.user_id == employee_user.id).first()

    assert client.delete(f"/notifications/{first.id}", headers=employee_headers).status_code == 200
    cleared = client.delete("/notifications/clear-all", headers=employee_headers)

    assert cleared.json()["data"] == {"deleted": 2}
    db.expire_all()
    assert db.query(Notification).count() == 1


def test_staff_can_send_system_notification(client, employee_user, hr_headers, employee_headers):
    payload = {"user_id": employee_user.id, "title": "Welcome", "message": "Your laptop is ready"}

    created = client.post("/notifications", json=payload, headers=hr_headers)
    forbidden = client.post("/notifications", json=payload, headers=employee_headers)
    missing = client.post("/notifications", json={**payload, "user_id": 9999}, headers=hr_headers)

    assert created.status_code == 201
    assert created.json()["data"]["notification_type"] == "system"
    assert forbidden.status_code == 403
    assert missing.status_code == 404
