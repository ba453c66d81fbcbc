"""Default catalog shown on first run, before anything has been saved"""

DEFAULT_CATEGORIES = [
    {
        'id': 'category-bedtime',
        'name': 'Bedtime Stories',
        'description': 'Quiet tales for winding down',
        'icon': 'fa-moon',
        'color': 'bg-indigo-300',
    },
    {
        'id': 'category-fairy-tales',
        'name': 'Fairy Tales',
        'description': 'Classic stories of magic and adventure',
        'icon': 'fa-hat-wizard',
        'color': 'bg-purple-300',
    },
    {
        'id': 'category-animals',
        'name': 'Animal Friends',
        'description': 'Stories starring animals big and small',
        'icon': 'fa-paw',
        'color': 'bg-green-300',
    },
]

DEFAULT_STORIES = [
    {
        'id': 'story-little-star',
        'title': 'The Little Star Who Could Not Sleep',
        'categoryId': 'category-bedtime',
        'duration': 8,
        'ageRange': '3-6',
        'views': 128,
        'createdAt': '2024-01-05T20:00:00+00:00',
    },
    {
        'id': 'story-moon-boat',
        'title': 'Sailing on the Moon Boat',
        'categoryId': 'category-bedtime',
        'duration': 10,
        'ageRange': '4-7',
        'views': 96,
        'createdAt': '2024-01-12T20:00:00+00:00',
    },
    {
        'id': 'story-glass-slipper',
        'title': 'The Glass Slipper',
        'categoryId': 'category-fairy-tales',
        'duration': 15,
        'ageRange': '5-8',
        'views': 210,
        'createdAt': '2024-02-01T18:30:00+00:00',
    },
    {
        'id': 'story-brave-rabbit',
        'title': 'The Brave Little Rabbit',
        'categoryId': 'category-animals',
        'duration': 6,
        'ageRange': '3-5',
        'views': 75,
        'createdAt': '2024-02-14T09:15:00+00:00',
    },
]
