from django.db import models
from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.contrib.auth.models import AbstractUser, BaseUserManager

from core.services.rr_calculator import calculate_age


class UserManager(BaseUserManager):
    """Accounts are keyed by a lower-cased email; there is no username."""

    def _create_user(self, email, password, full_name=None, date_of_birth=None, **extra_fields):
        if not email:
            raise ValueError('An email address is required')
        user = self.model(email=self.normalize_email(email).lower(), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)

        # Profile row comes from the post_save signal below
        if full_name or date_of_birth:
            profile = user.profile
            profile.full_name = full_name or profile.full_name
            profile.date_of_birth = date_of_birth or profile.date_of_birth
            profile.save(update_fields=['full_name', 'date_of_birth', 'updated_at'])
        return user

    def create_user(self, email, password=None, **extra_fields):
        """Create a league participant. ``full_name`` and ``date_of_birth`` go to the profile."""
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        if not (extra_fields['is_staff'] and extra_fields['is_superuser']):
            raise ValueError('A superuser needs is_staff and is_superuser set')
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """League participant account, signing in with email"""
    username = None
    email = models.EmailField('email address', unique=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        db_table = 'accounts_user'

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        """Name shown on leaderboards: profile name, then full name, then email"""
        profile = getattr(self, 'profile', None)
        if profile is not None and profile.full_name:
            return profile.full_name
        return self.get_full_name() or self.email


class Profile(models.Model):
    """Extended user profile information"""
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='profile')
    full_name = models.CharField(max_length=255, blank=True, null=True)
    date_of_birth = models.DateField(
        blank=True,
        null=True,
        help_text="Used to pick age-adjusted RR thresholds (over 65 / over 75)"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'accounts_profile'

    def __str__(self):
        return f"{self.user.email}'s Profile"

    def age_on(self, day):
        """Age in whole years on the given day, or None without a date of birth"""
        if not self.date_of_birth:
            return None
        return calculate_age(self.date_of_birth, day)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_profile(sender, instance, created, **kwargs):
    """Create a profile when a user is created"""
    if created:
        Profile.objects.get_or_create(user=instance)
