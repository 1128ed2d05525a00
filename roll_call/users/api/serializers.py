from rest_framework import serializers

from roll_call.users.models import User


class UserSerializer(serializers.ModelSerializer[User]):
    id = serializers.IntegerField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "name", "email", "role"]


class SignupSerializer(serializers.ModelSerializer[User]):
    password = serializers.CharField(write_only=True, min_length=1)

    class Meta:
        model = User
        fields = ["id", "name", "email", "password", "role"]
        read_only_fields = ["id"]
        extra_kwargs = {"role": {"required": True}, "name": {"required": True}}

    def create(self, validated_data):
        # Email doubles as the username so login can go by email alone
        return User.objects.create_user(
            username=validated_data["email"],
            email=validated_data["email"],
            password=validated_data["password"],
            name=validated_data.get("name", ""),
            role=validated_data["role"],
        )


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
