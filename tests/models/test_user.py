from folderhub.models.user import UserDeletedEventDTO, UserDeletedVO, UserVO


def test_user_from_service_payload() -> None:
    user = UserVO.from_dict(
        {"id": 4, "email": "dana@example.com", "firstName": "Dana", "storageUsed": 10}
    )
    assert user.first_name == "Dana"
    assert user.last_name is None
    assert user.storage_used == 10
    assert user.to_dict() == {
        "id": 4,
        "email": "dana@example.com",
        "firstName": "Dana",
        "storageUsed": 10,
    }


def test_user_deleted_event() -> None:
    event = UserDeletedEventDTO.from_dict({"userId": 9})
    assert event.user_id == 9


def test_user_deleted_response() -> None:
    vo = UserDeletedVO(shares_deleted=2, folders_deleted=5)
    assert vo.to_dict() == {"success": True, "sharesDeleted": 2, "foldersDeleted": 5}
