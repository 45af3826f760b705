import pandas as pd
import pydeck as pdk
import streamlit as st

from config import (
    CONTINENTS,
    DEFAULT_MAP_STATE,
    LAYOUT,
    MARKER_COLOR,
    MARKER_QUERY_PARAM,
    PAGE_ICON,
    PAGE_TITLE,
    SELECTED_MARKER_COLOR,
    STATE_FILE,
    TAG_LABELS,
)
from utils.api_client import get_api_client
from utils.auth import get_current_user, init_session_state, is_admin, logout
from utils.map_state import FilterState, JsonFileStorage, ViewportStore, deletable_markers
from utils.optimistic import PostBoard, forget_post
from utils.rich_text import sanitize_html

# Page configuration
st.set_page_config(
    page_title=PAGE_TITLE,
    page_icon=PAGE_ICON,
    layout=LAYOUT,
    initial_sidebar_state="expanded"
)

# Initialize session state
init_session_state()
api_client = get_api_client()
if "boards" not in st.session_state:
    st.session_state.boards = {}
if "selected_marker_id" not in st.session_state:
    st.session_state.selected_marker_id = None

viewport = ViewportStore(JsonFileStorage(STATE_FILE))
filters = FilterState(st.session_state)


def tag_label(tag: str) -> str:
    return TAG_LABELS.get(tag, tag)


def load_markers():
    """Fetch every marker into the session."""
    response = api_client.get_markers()
    if response["success"]:
        st.session_state.markers = response["data"]
    else:
        st.session_state.markers = []
        st.error(f"마커를 불러오지 못했습니다: {response['error']}")


def load_board(marker_id: str) -> PostBoard:
    """Fetch a marker's posts into a fresh board."""
    response = api_client.get_posts(marker_id)
    posts = response["data"] if response["success"] else []
    if not response["success"]:
        st.error(f"글을 불러오지 못했습니다: {response['error']}")
    board = PostBoard(posts, liked_ids=st.session_state.liked_post_ids)
    st.session_state.boards[marker_id] = board
    return board


def select_marker(marker):
    st.session_state.selected_marker_id = marker["id"]
    st.session_state.deep_link = marker["id"]
    st.query_params[MARKER_QUERY_PARAM] = marker["id"]
    viewport.focus_marker(marker)


def clear_selection():
    st.session_state.selected_marker_id = None
    st.session_state.deep_link = None
    st.query_params.pop(MARKER_QUERY_PARAM, None)


def open_deep_link():
    """Open the marker named by ``?marker=<id>``, once per link."""
    marker_id = st.query_params.get(MARKER_QUERY_PARAM)
    if not marker_id or marker_id == st.session_state.get("deep_link"):
        return

    response = api_client.get_marker(marker_id)
    if response["success"]:
        if not any(marker["id"] == marker_id for marker in st.session_state.get("markers", [])):
            st.session_state.pop("markers", None)
        select_marker(response["data"])
    else:
        st.session_state.deep_link = marker_id
        st.session_state.flash = response["error"]


def like_post(board: PostBoard, post_id: str):
    response = board.like(post_id, api_client.like_post)
    if not response["success"]:
        st.session_state.flash = response["error"]


def delete_post(board: PostBoard, marker_id: str, post_id: str, password: str):
    response = board.delete(post_id, lambda pid: api_client.delete_post(pid, password or None))
    if response["success"]:
        forget_post(st.session_state.markers, marker_id, post_id)
    else:
        st.session_state.flash = response["error"]


def show_intro():
    """First visit: pick a continent to start from."""
    st.title(f"{PAGE_ICON} {PAGE_TITLE}")
    st.markdown("Where do you want to start exploring?")

    cols = st.columns(3)
    for i, continent in enumerate(CONTINENTS):
        with cols[i % 3]:
            if st.button(continent["name"], use_container_width=True):
                viewport.choose_continent(continent)
                st.rerun()

    if st.button("Skip (start in Seoul)"):
        viewport.save(**DEFAULT_MAP_STATE)
        st.rerun()


def show_map(markers, view, selected_id):
    if not markers:
        data = pd.DataFrame(columns=["name", "lat", "lon", "posts", "color"])
    else:
        data = pd.DataFrame([
            {
                "name": marker["name"],
                "lat": marker["latitude"],
                "lon": marker["longitude"],
                "posts": len(marker.get("post_ids") or []),
                "color": SELECTED_MARKER_COLOR if marker["id"] == selected_id else MARKER_COLOR,
            }
            for marker in markers
        ])

    layer = pdk.Layer(
        "ScatterplotLayer",
        data=data,
        get_position="[lon, lat]",
        get_fill_color="color",
        get_radius=40,
        radius_min_pixels=6,
        pickable=True,
    )
    view_state = pdk.ViewState(latitude=view["lat"], longitude=view["lng"], zoom=view["zoom"])
    st.pydeck_chart(pdk.Deck(
        layers=[layer],
        initial_view_state=view_state,
        tooltip={"text": "{name}\n{posts} posts"},
    ))


def show_create_marker_form(view):
    with st.expander("➕ Add a marker"):
        with st.form("create_marker_form", clear_on_submit=True):
            name = st.text_input("Name*")
            col1, col2 = st.columns(2)
            with col1:
                latitude = st.number_input("Latitude", -90.0, 90.0, float(view["lat"]), format="%.6f")
            with col2:
                longitude = st.number_input("Longitude", -180.0, 180.0, float(view["lng"]), format="%.6f")
            tags = st.multiselect("Tags", list(TAG_LABELS), format_func=tag_label)
            submit = st.form_submit_button("Create marker", type="primary")

        if submit:
            if not name.strip():
                st.error("Please enter a name.")
                return
            response = api_client.create_marker(name.strip(), latitude, longitude, tags)
            if response["success"]:
                load_markers()
                select_marker(response["data"])
                st.rerun()
            else:
                st.error(response["error"])


def show_marker_panel(marker):
    marker_id = marker["id"]
    st.subheader(f"📍 {marker['name']}")
    st.caption(f"{marker['latitude']:.5f}, {marker['longitude']:.5f}")

    with st.form(f"tags_form_{marker_id}"):
        tags = st.multiselect("Tags", list(TAG_LABELS), default=marker.get("tags") or [], format_func=tag_label)
        if st.form_submit_button("Save tags"):
            response = api_client.update_marker_tags(marker_id, tags)
            if response["success"]:
                load_markers()
                st.rerun()
            else:
                st.error(response["error"])

    if marker in deletable_markers(st.session_state.markers):
        if st.button("🗑️ Delete marker", key=f"delete_marker_{marker_id}"):
            response = api_client.delete_marker(marker_id)
            if response["success"]:
                clear_selection()
                st.session_state.boards.pop(marker_id, None)
                load_markers()
                st.rerun()
            else:
                st.error(response["error"])
    else:
        st.caption("글이 있는 마커는 삭제할 수 없습니다.")

    st.markdown("---")
    show_posts(marker_id)


def show_posts(marker_id: str):
    board = st.session_state.boards.get(marker_id) or load_board(marker_id)

    col1, col2 = st.columns([4, 1])
    with col1:
        st.markdown(f"### 📝 Posts ({len(board.posts)})")
    with col2:
        if st.button("🔄 Refresh", key=f"refresh_{marker_id}"):
            load_board(marker_id)
            st.rerun()

    with st.expander("✍️ Write a post"):
        with st.form(f"create_post_{marker_id}", clear_on_submit=True):
            title = st.text_input("Title*")
            content = st.text_area("Content*")
            password = st.text_input("Password*", type="password", help="Needed later to edit or delete this post")
            if st.form_submit_button("Post", type="primary"):
                if title and content and password:
                    response = api_client.create_post(marker_id, title, content, password)
                    if response["success"]:
                        board.prepend(response["data"])
                        load_markers()
                        st.rerun()
                    else:
                        st.error(response["error"])
                else:
                    st.error("Please fill in title, content and password.")

    if not board.posts:
        st.info("No posts yet. Be the first to write one!")
        return

    admin = is_admin()
    for post in board.posts:
        with st.container(border=True):
            st.markdown(f"**{post['title']}**")
            st.markdown(sanitize_html(post["content"]), unsafe_allow_html=True)
            st.caption(f"{post['created_at'][:16].replace('T', ' ')}")
            st.button(
                f"{'❤️' if board.has_liked(post['id']) else '🤍'} {post['likes']}",
                key=f"like_{post['id']}",
                on_click=like_post,
                args=(board, post["id"]),
                disabled=board.has_liked(post["id"]),
            )

            with st.expander("Edit / delete"):
                with st.form(f"edit_post_{post['id']}"):
                    new_title = st.text_input("Title", value=post["title"])
                    new_content = st.text_area("Content", value=post["content"])
                    password = st.text_input(
                        "Password" + (" (not needed as admin)" if admin else ""),
                        type="password",
                    )
                    col1, col2 = st.columns(2)
                    with col1:
                        save = st.form_submit_button("💾 Save")
                    with col2:
                        remove = st.form_submit_button("🗑️ Delete")

                if save:
                    response = api_client.update_post(post["id"], new_title, new_content, password or None)
                    if response["success"]:
                        board.replace(response["data"])
                        st.rerun()
                    else:
                        st.error(response["error"])
                if remove:
                    delete_post(board, marker_id, post["id"], password)
                    st.rerun()


open_deep_link()

if not viewport.has_saved_state():
    show_intro()
    st.stop()

if "markers" not in st.session_state:
    load_markers()

# Sidebar
with st.sidebar:
    st.header("🔎 Filter")
    query = st.text_input("Search by name", value=filters.search_query)
    filters.set_search_query(query)
    tags = st.multiselect("Tags", list(TAG_LABELS), default=filters.selected_tags, format_func=tag_label)
    filters.set_selected_tags(tags)
    if st.button("Clear filters"):
        filters.clear()
        st.rerun()

    st.markdown("---")
    st.header("🧭 Map view")
    view = viewport.load()
    with st.form("view_form"):
        lat = st.number_input("Latitude", -90.0, 90.0, float(view["lat"]), format="%.5f")
        lng = st.number_input("Longitude", -180.0, 180.0, float(view["lng"]), format="%.5f")
        zoom = st.slider("Zoom", 1, 20, int(view["zoom"]))
        if st.form_submit_button("Move"):
            viewport.save(lat, lng, zoom)
            st.rerun()

    st.markdown("---")
    if is_admin():
        user_info = get_current_user()
        st.success(f"👤 Admin: {user_info.get('email')}")
        if st.button("🚪 Logout", use_container_width=True):
            logout()
            st.rerun()

    if st.button("🔄 Reload markers", use_container_width=True):
        load_markers()
        st.session_state.boards = {}
        st.rerun()

# Main content
st.title(f"{PAGE_ICON} {PAGE_TITLE}")

flash = st.session_state.pop("flash", None)
if flash:
    st.toast(flash)

markers = st.session_state.markers
visible = filters.apply(markers)
view = viewport.load()

map_col, panel_col = st.columns([3, 2])

with map_col:
    show_map(visible, view, st.session_state.selected_marker_id)
    st.caption(f"Showing {len(visible)} of {len(markers)} markers")

    if visible:
        names = {marker["id"]: marker for marker in visible}
        choice = st.selectbox(
            "Open a marker",
            options=list(names),
            format_func=lambda marker_id: names[marker_id]["name"],
            index=None,
            placeholder="Choose a marker",
        )
        if choice and choice != st.session_state.selected_marker_id:
            select_marker(names[choice])
            st.rerun()

    show_create_marker_form(view)

with panel_col:
    selected = next((m for m in markers if m["id"] == st.session_state.selected_marker_id), None)
    if selected:
        show_marker_panel(selected)
    else:
        st.info("Select a marker to read and write posts.")
