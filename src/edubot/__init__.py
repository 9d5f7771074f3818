"""EduBot streaming tutor chat client and relay."""
