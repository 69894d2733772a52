"""Core subsystems: cloud API client, Packer runner, remote shell, stage machine."""
