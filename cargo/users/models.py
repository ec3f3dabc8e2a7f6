from django.contrib.auth.models import AbstractUser
from django.db import models

from status_workflow.statuses import ActorRole


class User(AbstractUser):
    role = models.CharField(max_length=20, choices=ActorRole.choices, default=ActorRole.CLIENT)
    phone = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "users"
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def is_client(self):
        return self.role == ActorRole.CLIENT

    @property
    def is_warehouse_admin(self):
        return self.role == ActorRole.WAREHOUSE_ADMIN

    @property
    def is_admin(self):
        return self.role in (ActorRole.ADMIN, ActorRole.SUPERADMIN)

    @property
    def is_staff_role(self):
        return self.role != ActorRole.CLIENT
