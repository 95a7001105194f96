from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase

User = get_user_model()


class ProfileTests(TestCase):
    def test_profile_created_with_user(self):
        user = User.objects.create_user(email='new@example.com', password='pass')
        self.assertIsNotNone(user.profile.pk)

    def test_display_name_prefers_profile_name(self):
        user = User.objects.create_user(email='runner@example.com', password='pass', first_name='Sam')
        self.assertEqual(user.display_name, 'Sam')

        user.profile.full_name = 'Sam Runner'
        user.profile.save()
        self.assertEqual(user.display_name, 'Sam Runner')

    def test_age_on(self):
        user = User.objects.create_user(email='elder@example.com', password='pass')
        self.assertIsNone(user.profile.age_on(date(2026, 1, 1)))

        user.profile.date_of_birth = date(1955, 3, 10)
        self.assertEqual(user.profile.age_on(date(2026, 3, 9)), 70)

    def test_email_is_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='pass')

    def test_profile_fields_passed_through_manager(self):
        user = User.objects.create_user(
            email='Coach@Example.com', password='pass', full_name='Coach Carter', date_of_birth=date(1950, 5, 1)
        )
        user.refresh_from_db()

        self.assertEqual(user.email, 'coach@example.com')
        self.assertEqual(user.profile.full_name, 'Coach Carter')
        self.assertEqual(user.profile.date_of_birth, date(1950, 5, 1))
        self.assertEqual(str(user), 'Coach Carter')

    def test_superuser_flags(self):
        admin = User.objects.create_superuser(email='admin@example.com', password='pass')
        self.assertTrue(admin.is_staff and admin.is_superuser)

        with self.assertRaises(ValueError):
            User.objects.create_superuser(email='half@example.com', password='pass', is_staff=False)
