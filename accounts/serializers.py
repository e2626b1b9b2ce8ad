"""
Serializers for user authentication.
"""
from rest_framework import serializers
from django.contrib.auth import authenticate
from .capabilities import role_capabilities
from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model."""
    display_name = serializers.CharField(read_only=True)
    capabilities = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ('id', 'email', 'username', 'first_name', 'last_name', 'display_name',
                  'role', 'capabilities', 'created_at')
        read_only_fields = ('id', 'role', 'created_at')

    def get_capabilities(self, obj):
        if obj.is_superuser:
            return sorted(role_capabilities(User.ROLE_ADMINISTRATOR))
        return sorted(role_capabilities(obj.role))


class LoginSerializer(serializers.Serializer):
    """Serializer for login requests."""
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={'input_type': 'password'})

    def validate(self, attrs):
        email = attrs.get('email')
        password = attrs.get('password')

        if email and password:
            user = authenticate(username=email, password=password)
            if not user:
                raise serializers.ValidationError('Invalid email or password.')
            if not user.is_active:
                raise serializers.ValidationError('User account is disabled.')
            attrs['user'] = user
        else:
            raise serializers.ValidationError('Must include "email" and "password".')

        return attrs
